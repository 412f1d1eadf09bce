"""
Built-in seed data.

Usage:
    from artifect.seed import PROJECT_TYPES, default_definitions
"""

from artifect.seed.project_types import PROJECT_TYPES, default_definitions

__all__ = [
    "PROJECT_TYPES",
    "default_definitions",
]
