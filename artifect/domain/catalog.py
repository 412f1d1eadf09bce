"""
Project type catalog.

Project types, their lifecycle phases and artifact types are declared as
data (see ``artifect.seed.project_types``) or YAML, validated with
pydantic, and compiled once into an immutable ``Catalog`` that also owns
one ``DependencyGraph`` per project type.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from artifect.domain.dependency_graph import DependencyGraph, TypeDependency
from artifect.domain.errors import (
    InvalidArtifactTypeError,
    UnknownArtifactTypeError,
    ValidationError,
)
from artifect.domain.models import ArtifactFormat, ArtifactType, LifecyclePhase, ProjectType

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"^[a-z][a-z0-9_]*$")


def slugify(text: str) -> str:
    """Lowercase, underscore-separated machine key."""
    slug = re.sub(r"[^a-z0-9]+", "_", text.lower())
    return slug.strip("_")


# =============================================================================
# DEFINITIONS (validated input)
# =============================================================================

class ArtifactTypeDefinition(BaseModel):
    """Declared artifact type."""
    name: str = Field(..., min_length=1)
    slug: str
    syntax: str = "md"
    repeatable: bool = False
    plural_slug: Optional[str] = None
    depends_on: List[str] = Field(default_factory=list)

    @field_validator("slug", "plural_slug")
    @classmethod
    def slug_is_machine_key(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _SLUG_RE.match(value):
            raise ValueError(f"slug must match {_SLUG_RE.pattern}, got: {value!r}")
        return value


class PhaseDefinition(BaseModel):
    """Declared lifecycle phase."""
    name: str = Field(..., min_length=1)
    order: int = Field(..., ge=1)
    artifact_types: List[ArtifactTypeDefinition] = Field(default_factory=list)


class ProjectTypeDefinition(BaseModel):
    """Declared project type with its phases and type dependencies."""
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: str = ""
    phases: List[PhaseDefinition] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_consistency(self) -> "ProjectTypeDefinition":
        if self.slug is None:
            self.slug = slugify(self.name)

        orders = [p.order for p in self.phases]
        if len(orders) != len(set(orders)):
            raise ValueError(f"Duplicate phase order in project type '{self.name}'")
        phase_names = [p.name for p in self.phases]
        if len(phase_names) != len(set(phase_names)):
            raise ValueError(f"Duplicate phase name in project type '{self.name}'")

        types = [t for p in self.phases for t in p.artifact_types]
        names = [t.name for t in types]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate artifact type name in project type '{self.name}'")
        keys = [t.slug for t in types] + [t.plural_slug for t in types if t.plural_slug]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Duplicate artifact type slug in project type '{self.name}'")

        known = set(names)
        for artifact_type in types:
            for dep in artifact_type.depends_on:
                if dep not in known:
                    raise ValueError(
                        f"Artifact type '{artifact_type.name}' depends on unknown type '{dep}'"
                    )
        return self


def load_definitions(path: Path) -> List[ProjectTypeDefinition]:
    """Load project type definitions from a YAML file (a list or ``project_types:`` key)."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if isinstance(data, dict):
        data = data.get("project_types", [])
    if not isinstance(data, list):
        raise ValidationError(f"Project types file must contain a list: {path}")

    return [ProjectTypeDefinition.model_validate(item) for item in data]


# =============================================================================
# CATALOG (compiled, read-only)
# =============================================================================

class Catalog:
    """
    Read-only registry of project types, phases, artifact types and graphs.

    Safe to share across concurrent requests: nothing mutates after build.
    """

    def __init__(
        self,
        project_types: Sequence[ProjectType],
        artifact_types: Sequence[ArtifactType],
        graphs: Dict[int, DependencyGraph],
    ):
        self._project_types: Dict[int, ProjectType] = {pt.id: pt for pt in project_types}
        self._artifact_types: Dict[int, ArtifactType] = {at.id: at for at in artifact_types}
        self._phases: Dict[int, LifecyclePhase] = {
            phase.id: phase for pt in project_types for phase in pt.phases
        }
        self._graphs = graphs

    @classmethod
    def build(cls, definitions: Iterable[ProjectTypeDefinition]) -> "Catalog":
        """
        Compile definitions into a catalog, assigning sequential ids.

        Raises:
            DependencyCycleError: If a project type's dependencies form a cycle
        """
        project_types: List[ProjectType] = []
        artifact_types: List[ArtifactType] = []
        graphs: Dict[int, DependencyGraph] = {}
        phase_id = 0
        type_id = 0

        for pt_index, definition in enumerate(definitions, start=1):
            phases: List[LifecyclePhase] = []
            ids_by_name: Dict[str, int] = {}
            pending_edges: List[Tuple[str, str]] = []

            for phase_def in sorted(definition.phases, key=lambda p: p.order):
                phase_id += 1
                phases.append(LifecyclePhase(
                    id=phase_id,
                    name=phase_def.name,
                    order=phase_def.order,
                    project_type_id=pt_index,
                ))
                for type_def in phase_def.artifact_types:
                    type_id += 1
                    ids_by_name[type_def.name] = type_id
                    artifact_types.append(ArtifactType(
                        id=type_id,
                        name=type_def.name,
                        slug=type_def.slug,
                        syntax=type_def.syntax,
                        phase_id=phase_id,
                        project_type_id=pt_index,
                        repeatable=type_def.repeatable,
                        plural_slug=type_def.plural_slug,
                    ))
                    pending_edges.extend((type_def.name, dep) for dep in type_def.depends_on)

            project_types.append(ProjectType(
                id=pt_index,
                name=definition.name,
                slug=definition.slug or slugify(definition.name),
                description=definition.description,
                phases=tuple(phases),
            ))
            graphs[pt_index] = DependencyGraph(
                definition.name,
                {tid: name for name, tid in ids_by_name.items()},
                [
                    TypeDependency(ids_by_name[dependent], ids_by_name[dependency])
                    for dependent, dependency in pending_edges
                ],
            )
            logger.debug(
                f"Compiled project type '{definition.name}' "
                f"({len(phases)} phases, {len(ids_by_name)} artifact types)"
            )

        return cls(project_types, artifact_types, graphs)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def project_types(self) -> List[ProjectType]:
        return sorted(self._project_types.values(), key=lambda pt: pt.id)

    def get_project_type(self, project_type_id: int) -> ProjectType:
        try:
            return self._project_types[project_type_id]
        except KeyError:
            raise ValidationError(f"Unknown project type id: {project_type_id}") from None

    def get_project_type_by_name(self, name: str) -> ProjectType:
        for project_type in self._project_types.values():
            if project_type.name == name or project_type.slug == name:
                return project_type
        raise ValidationError(f"Unknown project type: {name}")

    def get_phase(self, phase_id: int) -> LifecyclePhase:
        return self._phases[phase_id]

    def get_artifact_type(self, artifact_type_id: int) -> ArtifactType:
        try:
            return self._artifact_types[artifact_type_id]
        except KeyError:
            raise UnknownArtifactTypeError(str(artifact_type_id)) from None

    def artifact_types_for(self, project_type_id: int) -> List[ArtifactType]:
        """Artifact types of a project type, ordered by phase order then declaration."""
        phase_order = {p.id: p.order for p in self.get_project_type(project_type_id).phases}
        types = [t for t in self._artifact_types.values() if t.project_type_id == project_type_id]
        return sorted(types, key=lambda t: (phase_order[t.phase_id], t.id))

    def artifact_types_in_phase(self, phase_id: int) -> List[ArtifactType]:
        return sorted(
            (t for t in self._artifact_types.values() if t.phase_id == phase_id),
            key=lambda t: t.id,
        )

    def resolve_artifact_type(self, name: str, project_type_id: int) -> ArtifactType:
        """
        Find the artifact type called ``name`` within a project type.

        Raises:
            UnknownArtifactTypeError: If no project type declares ``name``
            InvalidArtifactTypeError: If ``name`` exists but not in this project type
        """
        matches = [t for t in self._artifact_types.values() if t.name == name]
        if not matches:
            raise UnknownArtifactTypeError(name)
        for artifact_type in matches:
            if artifact_type.project_type_id == project_type_id:
                return artifact_type
        raise InvalidArtifactTypeError(name, self.get_project_type(project_type_id).name)

    def graph_for(self, project_type_id: int) -> DependencyGraph:
        try:
            return self._graphs[project_type_id]
        except KeyError:
            raise ValidationError(f"Unknown project type id: {project_type_id}") from None

    def dependency_types(self, artifact_type: ArtifactType) -> List[ArtifactType]:
        """Direct dependency types of ``artifact_type``."""
        graph = self.graph_for(artifact_type.project_type_id)
        return [self._artifact_types[tid] for tid in graph.dependencies_of(artifact_type.id)]

    def artifact_format(self, artifact_type: ArtifactType) -> ArtifactFormat:
        return ArtifactFormat.for_type(artifact_type)
