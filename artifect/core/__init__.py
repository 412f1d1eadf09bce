"""
Core infrastructure for Artifect.

- Configuration management
- Logging setup
"""

from artifect.core.config import Settings
from artifect.core.logging import configure_logging, get_logger

__all__ = [
    "Settings",
    "configure_logging",
    "get_logger",
]
