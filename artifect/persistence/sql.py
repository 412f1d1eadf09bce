"""
SQLAlchemy artifact store.

Async ORM tables for projects, artifacts, versions and interactions, plus
a store that maps them to the domain dataclasses.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from artifect.domain.errors import ArtifactNotFoundError
from artifect.domain.models import (
    Artifact,
    ArtifactState,
    ArtifactVersion,
    Interaction,
    MessageRole,
    Project,
)

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ORM MODELS
# =============================================================================

class ProjectORM(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    project_type_id: Mapped[int] = mapped_column(Integer, nullable=False)
    owner_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ArtifactORM(Base):
    __tablename__ = "artifacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    artifact_type_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    state_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_version_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    history_floor: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ArtifactVersionORM(Base):
    __tablename__ = "artifact_versions"
    __table_args__ = (
        UniqueConstraint("artifact_id", "version_number", name="uq_artifact_version_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    artifact_id: Mapped[int] = mapped_column(
        ForeignKey("artifacts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class InteractionORM(Base):
    __tablename__ = "artifact_interactions"
    __table_args__ = (
        UniqueConstraint("artifact_id", "sequence_number", name="uq_interaction_sequence"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    artifact_id: Mapped[int] = mapped_column(
        ForeignKey("artifacts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    version_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("artifact_versions.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


# =============================================================================
# MAPPING
# =============================================================================

def _to_project(row: ProjectORM) -> Project:
    return Project(
        id=row.id,
        name=row.name,
        project_type_id=row.project_type_id,
        owner_id=row.owner_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_artifact(row: ArtifactORM) -> Artifact:
    return Artifact(
        id=row.id,
        project_id=row.project_id,
        artifact_type_id=row.artifact_type_id,
        name=row.name,
        state=ArtifactState.from_id(row.state_id),
        current_version_id=row.current_version_id,
        history_floor=row.history_floor,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_version(row: ArtifactVersionORM) -> ArtifactVersion:
    return ArtifactVersion(
        id=row.id,
        artifact_id=row.artifact_id,
        version_number=row.version_number,
        content=row.content,
        created_at=row.created_at,
        created_by=row.created_by,
    )


def _to_interaction(row: InteractionORM) -> Interaction:
    return Interaction(
        id=row.id,
        artifact_id=row.artifact_id,
        role=MessageRole(row.role),
        content=row.content,
        sequence_number=row.sequence_number,
        version_id=row.version_id,
        created_at=row.created_at,
    )


# =============================================================================
# ENGINE HELPERS
# =============================================================================

def create_session_factory(database_url: str) -> Tuple[AsyncEngine, Callable[[], AsyncSession]]:
    """Create an async engine and session factory for ``database_url``."""
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://")
    elif database_url.startswith("sqlite://") and "+aiosqlite" not in database_url:
        database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://")

    engine = create_async_engine(database_url, echo=False)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, session_factory


async def create_schema(engine: AsyncEngine) -> None:
    """
    Create the artifact tables if they don't exist.

    Intended for development and tests; production schemas should be
    migrated explicitly.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Artifact store schema ready")


# =============================================================================
# STORE
# =============================================================================

class SqlArtifactStore:
    """SQLAlchemy implementation of ArtifactStore."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        """
        Initialize store.

        Args:
            session_factory: Callable that returns an AsyncSession
        """
        self._session_factory = session_factory

    async def add_project(self, project: Project) -> Project:
        async with self._session_factory() as session:
            row = ProjectORM(
                name=project.name,
                project_type_id=project.project_type_id,
                owner_id=project.owner_id,
                created_at=project.created_at,
                updated_at=project.updated_at,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_project(row)

    async def get_project(self, project_id: int) -> Optional[Project]:
        async with self._session_factory() as session:
            row = await session.get(ProjectORM, project_id)
            return _to_project(row) if row else None

    async def list_projects(self, owner_id: Optional[str] = None) -> List[Project]:
        async with self._session_factory() as session:
            query = select(ProjectORM).order_by(ProjectORM.id)
            if owner_id is not None:
                query = query.where(ProjectORM.owner_id == owner_id)
            result = await session.execute(query)
            return [_to_project(row) for row in result.scalars().all()]

    async def add_artifact(self, artifact: Artifact) -> Artifact:
        async with self._session_factory() as session:
            row = ArtifactORM(
                project_id=artifact.project_id,
                artifact_type_id=artifact.artifact_type_id,
                name=artifact.name,
                state_id=artifact.state.state_id,
                current_version_id=artifact.current_version_id,
                history_floor=artifact.history_floor,
                created_at=artifact.created_at,
                updated_at=artifact.updated_at,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_artifact(row)

    async def save_artifact(self, artifact: Artifact) -> Artifact:
        async with self._session_factory() as session:
            row = await session.get(ArtifactORM, artifact.id)
            if row is None:
                raise ArtifactNotFoundError(artifact.id)
            row.name = artifact.name
            row.state_id = artifact.state.state_id
            row.current_version_id = artifact.current_version_id
            row.history_floor = artifact.history_floor
            row.updated_at = _utcnow()
            await session.commit()
            await session.refresh(row)
            return _to_artifact(row)

    async def get_artifact(self, artifact_id: int) -> Optional[Artifact]:
        async with self._session_factory() as session:
            row = await session.get(ArtifactORM, artifact_id)
            return _to_artifact(row) if row else None

    async def list_artifacts(
        self,
        project_id: int,
        artifact_type_id: Optional[int] = None,
    ) -> List[Artifact]:
        async with self._session_factory() as session:
            query = (
                select(ArtifactORM)
                .where(ArtifactORM.project_id == project_id)
                .order_by(ArtifactORM.id)
            )
            if artifact_type_id is not None:
                query = query.where(ArtifactORM.artifact_type_id == artifact_type_id)
            result = await session.execute(query)
            return [_to_artifact(row) for row in result.scalars().all()]

    async def add_version(
        self,
        artifact_id: int,
        content: str,
        created_by: Optional[str] = None,
    ) -> ArtifactVersion:
        async with self._session_factory() as session:
            current = await session.scalar(
                select(func.max(ArtifactVersionORM.version_number))
                .where(ArtifactVersionORM.artifact_id == artifact_id)
            )
            row = ArtifactVersionORM(
                artifact_id=artifact_id,
                version_number=(current or 0) + 1,
                content=content,
                created_by=created_by,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_version(row)

    async def get_version(self, version_id: int) -> Optional[ArtifactVersion]:
        async with self._session_factory() as session:
            row = await session.get(ArtifactVersionORM, version_id)
            return _to_version(row) if row else None

    async def list_versions(self, artifact_id: int) -> List[ArtifactVersion]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ArtifactVersionORM)
                .where(ArtifactVersionORM.artifact_id == artifact_id)
                .order_by(ArtifactVersionORM.version_number)
            )
            return [_to_version(row) for row in result.scalars().all()]

    async def add_interaction(
        self,
        artifact_id: int,
        role: MessageRole,
        content: str,
        version_id: Optional[int] = None,
    ) -> Interaction:
        async with self._session_factory() as session:
            current = await session.scalar(
                select(func.max(InteractionORM.sequence_number))
                .where(InteractionORM.artifact_id == artifact_id)
            )
            row = InteractionORM(
                artifact_id=artifact_id,
                role=role.value,
                content=content,
                sequence_number=(current or 0) + 1,
                version_id=version_id,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_interaction(row)

    async def list_interactions(
        self,
        artifact_id: int,
        since_sequence: int = 1,
        limit: Optional[int] = None,
    ) -> List[Interaction]:
        if limit is not None and limit <= 0:
            return []
        async with self._session_factory() as session:
            query = (
                select(InteractionORM)
                .where(
                    InteractionORM.artifact_id == artifact_id,
                    InteractionORM.sequence_number >= since_sequence,
                )
                .order_by(InteractionORM.sequence_number.desc())
            )
            if limit is not None:
                query = query.limit(limit)
            result = await session.execute(query)
            rows = list(result.scalars().all())
            rows.reverse()
            return [_to_interaction(row) for row in rows]
