"""Artifect: AI-assisted artifact lifecycle management."""

__version__ = "0.1.0"
