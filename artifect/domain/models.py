"""Artifact lifecycle domain models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple

from artifect.domain.errors import UnknownStateError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArtifactState(str, Enum):
    """Artifact states, shared by every project type."""
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    APPROVED = "Approved"

    @property
    def state_id(self) -> int:
        return _STATE_IDS[self]

    @classmethod
    def from_id(cls, state_id: int) -> "ArtifactState":
        """Resolve a numeric state id (1, 2, 3)."""
        for state, sid in _STATE_IDS.items():
            if sid == state_id:
                return state
        raise UnknownStateError(state_id)

    @classmethod
    def from_name(cls, name: str) -> "ArtifactState":
        try:
            return cls(name)
        except ValueError:
            raise UnknownStateError(name) from None


_STATE_IDS: Dict[ArtifactState, int] = {
    ArtifactState.TODO: 1,
    ArtifactState.IN_PROGRESS: 2,
    ArtifactState.APPROVED: 3,
}


class MessageRole(str, Enum):
    """Conversation roles; only user and assistant turns are recorded."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class LifecyclePhase:
    """An ordered phase of a project type."""
    id: int
    name: str
    order: int
    project_type_id: int


@dataclass(frozen=True)
class ArtifactType:
    """A kind of artifact produced within one lifecycle phase."""
    id: int
    name: str
    slug: str
    syntax: str
    phase_id: int
    project_type_id: int
    repeatable: bool = False
    plural_slug: Optional[str] = None

    @property
    def context_key(self) -> str:
        """Key under which this type's content is injected into prompt context.

        Repeatable types are injected as a list under the plural key.
        """
        if not self.repeatable:
            return self.slug
        if self.plural_slug:
            return self.plural_slug
        return self.slug if self.slug.endswith("s") else f"{self.slug}s"


@dataclass(frozen=True)
class ProjectType:
    """A named lifecycle template."""
    id: int
    name: str
    slug: str
    description: str = ""
    phases: Tuple[LifecyclePhase, ...] = ()


@dataclass(frozen=True)
class ArtifactFormat:
    """Delimiters and syntax used to exchange an artifact with a model."""
    start_tag: str
    end_tag: str
    syntax: str
    commentary_start_tag: str = "[COMMENTARY]"
    commentary_end_tag: str = "[/COMMENTARY]"

    @classmethod
    def for_type(cls, artifact_type: ArtifactType) -> "ArtifactFormat":
        tag = artifact_type.slug.upper()
        return cls(
            start_tag=f"[{tag}]",
            end_tag=f"[/{tag}]",
            syntax=artifact_type.syntax,
        )


@dataclass
class Project:
    """A project instance of a project type."""
    id: Optional[int]
    name: str
    project_type_id: int
    owner_id: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class Artifact:
    """
    One artifact within a project.

    ``current_version_id`` is advanced only by the workflow orchestrator.
    ``history_floor`` is the first interaction sequence number visible to
    the model (raised when a reopened artifact's history is reset).
    """
    id: Optional[int]
    project_id: int
    artifact_type_id: int
    name: str
    state: ArtifactState = ArtifactState.TODO
    current_version_id: Optional[int] = None
    history_floor: int = 1
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class ArtifactVersion:
    """Immutable content snapshot of an artifact."""
    id: int
    artifact_id: int
    version_number: int
    content: str
    created_at: datetime = field(default_factory=_utcnow)
    created_by: Optional[str] = None


@dataclass(frozen=True)
class Interaction:
    """One conversation turn recorded against an artifact."""
    id: int
    artifact_id: int
    role: MessageRole
    content: str
    sequence_number: int
    version_id: Optional[int] = None
    created_at: datetime = field(default_factory=_utcnow)
