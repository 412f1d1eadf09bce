"""
Context assembly for artifact generation.

Gathers project metadata, the target artifact's metadata and the approved
content of every artifact type the target depends on, keyed by slug, into
the mapping consumed by prompt templates.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from artifect.domain.catalog import Catalog
from artifect.domain.models import Artifact, ArtifactState, ArtifactType, Project
from artifect.persistence.store import ArtifactStore

logger = logging.getLogger(__name__)

DependencyValue = Union[str, List[str]]


@dataclass
class ContextBundle:
    """Template context for one generation or update turn."""
    project: Dict[str, Any]
    artifact: Dict[str, Any]
    is_update: bool
    user_message: Optional[str] = None
    dependencies: Dict[str, DependencyValue] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to the mapping templates see: fixed keys plus slug keys."""
        data: Dict[str, Any] = dict(self.dependencies)
        data.update({
            "project": dict(self.project),
            "artifact": dict(self.artifact),
            "is_update": self.is_update,
            "user_message": self.user_message,
        })
        return data


class ContextAssembler:
    """Builds ContextBundles from the catalog and the artifact store."""

    def __init__(
        self,
        catalog: Catalog,
        store: ArtifactStore,
        repeatable_policy: str = "all",
    ):
        self._catalog = catalog
        self._store = store
        self._repeatable_policy = repeatable_policy

    async def assemble(
        self,
        project: Project,
        artifact: Artifact,
        is_update: bool,
        user_message: Optional[str] = None,
    ) -> ContextBundle:
        """
        Assemble context for ``artifact``.

        ``artifact`` may be unsaved (``id`` is None) when a new artifact is
        being generated. Dependencies without an approved instance are
        omitted and logged.
        """
        artifact_type = self._catalog.get_artifact_type(artifact.artifact_type_id)
        project_type = self._catalog.get_project_type(project.project_type_id)
        phase = self._catalog.get_phase(artifact_type.phase_id)

        artifact_data: Dict[str, Any] = {
            "artifact_type_id": artifact_type.id,
            "artifact_type_name": artifact_type.name,
            "artifact_type_slug": artifact_type.slug,
            "artifact_phase": phase.name,
            "syntax": artifact_type.syntax,
        }
        if is_update:
            artifact_data.update({
                "id": artifact.id,
                "name": artifact.name,
                "content": await self._current_content(artifact),
            })

        bundle = ContextBundle(
            project={
                "name": project.name,
                "project_type_id": project_type.id,
                "project_type_name": project_type.name,
            },
            artifact=artifact_data,
            is_update=is_update,
            user_message=user_message,
        )

        for dependency_type in self._catalog.dependency_types(artifact_type):
            value = await self._dependency_value(project, dependency_type)
            if value is None:
                logger.info(
                    f"No approved '{dependency_type.name}' in project {project.id}; "
                    f"omitting from context for '{artifact_type.name}'"
                )
                continue
            bundle.dependencies[dependency_type.context_key] = value

        if artifact_type.repeatable:
            siblings = await self._sibling_contents(project, artifact_type, artifact.id)
            if siblings:
                bundle.dependencies[artifact_type.context_key] = siblings

        return bundle

    async def _dependency_value(
        self,
        project: Project,
        dependency_type: ArtifactType,
    ) -> Optional[DependencyValue]:
        instances = await self._store.list_artifacts(project.id, dependency_type.id)
        approved = [a for a in instances if a.state == ArtifactState.APPROVED]
        if not approved:
            return None

        latest = max(approved, key=lambda a: (a.updated_at, a.id))
        if not dependency_type.repeatable:
            return await self._current_content(latest)

        if self._repeatable_policy == "latest":
            return [await self._current_content(latest)]
        return [await self._current_content(a) for a in approved]

    async def _sibling_contents(
        self,
        project: Project,
        artifact_type: ArtifactType,
        exclude_id: Optional[int],
    ) -> List[str]:
        instances = await self._store.list_artifacts(project.id, artifact_type.id)
        return [
            await self._current_content(a)
            for a in instances
            if a.id != exclude_id and a.current_version_id is not None
        ]

    async def _current_content(self, artifact: Artifact) -> str:
        if artifact.current_version_id is None:
            return ""
        version = await self._store.get_version(artifact.current_version_id)
        return version.content if version else ""
