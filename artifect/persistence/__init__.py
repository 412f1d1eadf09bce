"""
Persistence layer for Artifect.

- ArtifactStore protocol
- InMemoryArtifactStore (tests, single process)
- SqlArtifactStore (SQLAlchemy async)
"""

from artifect.persistence.store import ArtifactStore, InMemoryArtifactStore
from artifect.persistence.sql import SqlArtifactStore, create_schema, create_session_factory

__all__ = [
    "ArtifactStore",
    "InMemoryArtifactStore",
    "SqlArtifactStore",
    "create_schema",
    "create_session_factory",
]
