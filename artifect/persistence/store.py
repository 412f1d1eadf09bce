"""Artifact store protocol and in-memory implementation."""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, runtime_checkable

from artifect.domain.errors import ArtifactNotFoundError
from artifect.domain.models import (
    Artifact,
    ArtifactVersion,
    Interaction,
    MessageRole,
    Project,
)


@runtime_checkable
class ArtifactStore(Protocol):
    """
    Protocol for project, artifact, version and interaction storage.

    Versions and interactions are append-only. The store assigns ids,
    per-artifact version numbers and per-artifact sequence numbers.
    """

    async def add_project(self, project: Project) -> Project:
        """Persist a new project and return it with its id."""
        ...

    async def get_project(self, project_id: int) -> Optional[Project]:
        ...

    async def list_projects(self, owner_id: Optional[str] = None) -> List[Project]:
        """List projects, optionally only those owned by ``owner_id``."""
        ...

    async def add_artifact(self, artifact: Artifact) -> Artifact:
        """Persist a new artifact and return it with its id."""
        ...

    async def save_artifact(self, artifact: Artifact) -> Artifact:
        """Update an existing artifact (name, state, version pointer, history floor)."""
        ...

    async def get_artifact(self, artifact_id: int) -> Optional[Artifact]:
        ...

    async def list_artifacts(
        self,
        project_id: int,
        artifact_type_id: Optional[int] = None,
    ) -> List[Artifact]:
        """List a project's artifacts in creation order, optionally filtered by type."""
        ...

    async def add_version(
        self,
        artifact_id: int,
        content: str,
        created_by: Optional[str] = None,
    ) -> ArtifactVersion:
        """Append a version with the next version number."""
        ...

    async def get_version(self, version_id: int) -> Optional[ArtifactVersion]:
        ...

    async def list_versions(self, artifact_id: int) -> List[ArtifactVersion]:
        """All versions of an artifact, oldest first."""
        ...

    async def add_interaction(
        self,
        artifact_id: int,
        role: MessageRole,
        content: str,
        version_id: Optional[int] = None,
    ) -> Interaction:
        """Append an interaction with the next sequence number."""
        ...

    async def list_interactions(
        self,
        artifact_id: int,
        since_sequence: int = 1,
        limit: Optional[int] = None,
    ) -> List[Interaction]:
        """
        Interactions with ``sequence_number >= since_sequence``.

        With ``limit``, only the most recent ``limit`` are returned. The
        result is always in chronological order.
        """
        ...


class InMemoryArtifactStore:
    """In-memory artifact store for testing and single-process use."""

    def __init__(self):
        self._projects: Dict[int, Project] = {}
        self._artifacts: Dict[int, Artifact] = {}
        self._versions: Dict[int, ArtifactVersion] = {}
        self._versions_by_artifact: Dict[int, List[int]] = {}
        self._interactions: Dict[int, List[Interaction]] = {}
        self._next_project_id = 1
        self._next_artifact_id = 1
        self._next_version_id = 1
        self._next_interaction_id = 1

    async def add_project(self, project: Project) -> Project:
        stored = replace(project, id=self._next_project_id)
        self._next_project_id += 1
        self._projects[stored.id] = stored
        return replace(stored)

    async def get_project(self, project_id: int) -> Optional[Project]:
        project = self._projects.get(project_id)
        return replace(project) if project else None

    async def list_projects(self, owner_id: Optional[str] = None) -> List[Project]:
        return [
            replace(p) for p in sorted(self._projects.values(), key=lambda p: p.id)
            if owner_id is None or p.owner_id == owner_id
        ]

    async def add_artifact(self, artifact: Artifact) -> Artifact:
        stored = replace(artifact, id=self._next_artifact_id)
        self._next_artifact_id += 1
        self._artifacts[stored.id] = stored
        self._versions_by_artifact[stored.id] = []
        self._interactions[stored.id] = []
        return replace(stored)

    async def save_artifact(self, artifact: Artifact) -> Artifact:
        if artifact.id not in self._artifacts:
            raise ArtifactNotFoundError(artifact.id)
        stored = replace(artifact, updated_at=datetime.now(timezone.utc))
        self._artifacts[stored.id] = stored
        return replace(stored)

    async def get_artifact(self, artifact_id: int) -> Optional[Artifact]:
        artifact = self._artifacts.get(artifact_id)
        return replace(artifact) if artifact else None

    async def list_artifacts(
        self,
        project_id: int,
        artifact_type_id: Optional[int] = None,
    ) -> List[Artifact]:
        return [
            replace(a) for a in sorted(self._artifacts.values(), key=lambda a: a.id)
            if a.project_id == project_id
            and (artifact_type_id is None or a.artifact_type_id == artifact_type_id)
        ]

    async def add_version(
        self,
        artifact_id: int,
        content: str,
        created_by: Optional[str] = None,
    ) -> ArtifactVersion:
        version_ids = self._versions_by_artifact[artifact_id]
        version = ArtifactVersion(
            id=self._next_version_id,
            artifact_id=artifact_id,
            version_number=len(version_ids) + 1,
            content=content,
            created_by=created_by,
        )
        self._next_version_id += 1
        self._versions[version.id] = version
        version_ids.append(version.id)
        return version

    async def get_version(self, version_id: int) -> Optional[ArtifactVersion]:
        return self._versions.get(version_id)

    async def list_versions(self, artifact_id: int) -> List[ArtifactVersion]:
        return [self._versions[vid] for vid in self._versions_by_artifact.get(artifact_id, [])]

    async def add_interaction(
        self,
        artifact_id: int,
        role: MessageRole,
        content: str,
        version_id: Optional[int] = None,
    ) -> Interaction:
        history = self._interactions[artifact_id]
        interaction = Interaction(
            id=self._next_interaction_id,
            artifact_id=artifact_id,
            role=role,
            content=content,
            sequence_number=len(history) + 1,
            version_id=version_id,
        )
        self._next_interaction_id += 1
        history.append(interaction)
        return interaction

    async def list_interactions(
        self,
        artifact_id: int,
        since_sequence: int = 1,
        limit: Optional[int] = None,
    ) -> List[Interaction]:
        visible = [
            i for i in self._interactions.get(artifact_id, [])
            if i.sequence_number >= since_sequence
        ]
        if limit is not None:
            visible = visible[-limit:] if limit > 0 else []
        return visible
