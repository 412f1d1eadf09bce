"""
Workflow orchestrator.

Coordinates projects and artifacts: creation with an opening AI turn,
conversational updates, manual edits and state transitions. Every state
change goes through the state machine and, when entering In Progress,
through the type dependency gate. Validation happens before any provider
call; nothing is recorded when the provider fails.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from artifect.core.config import Settings
from artifect.domain import state_machine
from artifect.domain.catalog import Catalog
from artifect.domain.context import ContextAssembler, ContextBundle
from artifect.domain.dependency_graph import approved_type_ids
from artifect.domain.errors import (
    ArtifactNotFoundError,
    DependencyNotApprovedError,
    DuplicateArtifactError,
    NoChangesError,
    ProjectNotFoundError,
    ValidationError,
)
from artifect.domain.models import (
    Artifact,
    ArtifactState,
    ArtifactType,
    Interaction,
    MessageRole,
    Project,
)
from artifect.llm.assistant import ArtifactAssistant, AssistantReply
from artifect.llm.models import Message
from artifect.llm.registry import ModelSelector
from artifect.llm.stream import ChunkCallback
from artifect.persistence.store import ArtifactStore

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class ArtifactView:
    """An artifact (or a placeholder for a type with no instance yet)."""
    artifact_id: Optional[int]
    name: str
    artifact_type_id: int
    artifact_type_name: str
    phase_name: str
    state: ArtifactState
    available_transitions: List[ArtifactState] = field(default_factory=list)
    dependency_type_ids: List[int] = field(default_factory=list)
    version_number: Optional[int] = None
    content: Optional[str] = None

    @property
    def state_id(self) -> int:
        return self.state.state_id

    @property
    def state_name(self) -> str:
        return self.state.value

    @property
    def is_placeholder(self) -> bool:
        return self.artifact_id is None


@dataclass
class ArtifactDetails:
    """An artifact plus the conversation messages relevant to the call."""
    artifact: ArtifactView
    messages: List[Message] = field(default_factory=list)


@dataclass
class ProjectDetails:
    """A project with its artifacts grouped by phase, in phase order."""
    project: Project
    project_type_name: str
    phases: Dict[str, List[ArtifactView]] = field(default_factory=dict)


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class WorkflowOrchestrator:
    """Entry point for every project and artifact operation."""

    def __init__(
        self,
        catalog: Catalog,
        store: ArtifactStore,
        assistant: ArtifactAssistant,
        settings: Optional[Settings] = None,
    ):
        self._catalog = catalog
        self._store = store
        self._assistant = assistant
        self._settings = settings or Settings()
        self._context = ContextAssembler(
            catalog,
            store,
            repeatable_policy=self._settings.repeatable_dependency_policy,
        )

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(
        self,
        name: str,
        project_type_name: str,
        owner_id: Optional[str] = None,
    ) -> Project:
        """Create a project of the named project type."""
        if not name or not name.strip():
            raise ValidationError("Project name must not be empty")
        project_type = self._catalog.get_project_type_by_name(project_type_name)
        project = await self._store.add_project(Project(
            id=None,
            name=name.strip(),
            project_type_id=project_type.id,
            owner_id=owner_id,
        ))
        logger.info(f"Created project {project.id} '{project.name}' ({project_type.name})")
        return project

    async def list_projects(self, requester: Optional[str] = None) -> List[Project]:
        """Projects visible to ``requester`` (all projects when None)."""
        projects = await self._store.list_projects()
        return [p for p in projects if _visible_to(p, requester)]

    async def view_project(self, project_id: int, requester: Optional[str] = None) -> ProjectDetails:
        """Artifacts grouped by phase, with a placeholder for each type lacking an instance."""
        project = await self._load_project(project_id, requester)
        project_type = self._catalog.get_project_type(project.project_type_id)

        by_type: Dict[int, List[Artifact]] = {}
        for artifact in await self._store.list_artifacts(project.id):
            by_type.setdefault(artifact.artifact_type_id, []).append(artifact)

        details = ProjectDetails(project=project, project_type_name=project_type.name)
        for phase in project_type.phases:
            views: List[ArtifactView] = []
            for artifact_type in self._catalog.artifact_types_in_phase(phase.id):
                instances = by_type.get(artifact_type.id, [])
                if instances:
                    for artifact in instances:
                        views.append(await self._view(artifact, artifact_type))
                else:
                    views.append(self._placeholder(artifact_type))
            details.phases[phase.name] = views
        return details

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    async def get_artifact_details(
        self,
        artifact_id: int,
        requester: Optional[str] = None,
    ) -> ArtifactDetails:
        """Current version, legal transitions and the most recent messages."""
        artifact, _ = await self._load_artifact(artifact_id, requester)
        artifact_type = self._catalog.get_artifact_type(artifact.artifact_type_id)
        interactions = await self._store.list_interactions(
            artifact.id,
            limit=self._settings.details_history_window,
        )
        return ArtifactDetails(
            artifact=await self._view(artifact, artifact_type),
            messages=_to_messages(interactions),
        )

    async def create_artifact(
        self,
        project_id: int,
        artifact_type_name: str,
        selector: Optional[ModelSelector] = None,
        requester: Optional[str] = None,
    ) -> ArtifactDetails:
        """
        Create an artifact and run the opening AI turn.

        Raises:
            ProjectNotFoundError: If the project is missing or not the requester's
            UnknownArtifactTypeError: If the type name is not in the catalog
            InvalidArtifactTypeError: If the type is not part of the project's type
            DuplicateArtifactError: If a non-repeatable type already has an instance
            DependencyNotApprovedError: If a dependency type has no approved instance
        """
        project = await self._load_project(project_id, requester)
        artifact_type = self._catalog.resolve_artifact_type(artifact_type_name, project.project_type_id)

        existing = await self._store.list_artifacts(project.id, artifact_type.id)
        if existing and not artifact_type.repeatable:
            raise DuplicateArtifactError(artifact_type.name)
        await self._require_startable(project, artifact_type)

        draft = Artifact(
            id=None,
            project_id=project.id,
            artifact_type_id=artifact_type.id,
            name=f"New {artifact_type.name}",
        )
        bundle = await self._context.assemble(project, draft, is_update=False)
        reply = await self._respond(bundle, project, artifact_type, [], selector)

        artifact = await self._store.add_artifact(draft)
        version = await self._store.add_version(artifact.id, reply.content, created_by=requester)
        artifact.current_version_id = version.id
        artifact = await self._store.save_artifact(artifact)

        messages: List[Message] = []
        if reply.commentary:
            await self._store.add_interaction(
                artifact.id, MessageRole.ASSISTANT, reply.commentary, version.id
            )
            messages.append(Message.assistant(reply.commentary))

        logger.info(
            f"Created artifact {artifact.id} '{artifact.name}' in project {project.id}",
            extra={"artifact_id": artifact.id, "project_id": project.id, "provider": reply.provider},
        )
        return ArtifactDetails(artifact=await self._view(artifact, artifact_type), messages=messages)

    async def update_artifact(
        self,
        artifact_id: int,
        name: Optional[str] = None,
        content: Optional[str] = None,
        requester: Optional[str] = None,
    ) -> ArtifactDetails:
        """
        Manually edit an artifact's name and/or content.

        A content change always creates a new version.

        Raises:
            NoChangesError: If neither the name nor the content changes
        """
        artifact, _ = await self._load_artifact(artifact_id, requester)
        artifact_type = self._catalog.get_artifact_type(artifact.artifact_type_id)

        if name is not None and not name.strip():
            raise ValidationError("Artifact name must not be empty")

        name_changed = name is not None and name.strip() != artifact.name
        content_changed = content is not None and content != await self._current_content(artifact)
        if not name_changed and not content_changed:
            raise NoChangesError(artifact.id)

        if name_changed:
            artifact.name = name.strip()
        if content_changed:
            version = await self._store.add_version(artifact.id, content, created_by=requester)
            artifact.current_version_id = version.id

        artifact = await self._store.save_artifact(artifact)
        return ArtifactDetails(artifact=await self._view(artifact, artifact_type))

    async def interact_artifact(
        self,
        artifact_id: int,
        user_message: str,
        selector: Optional[ModelSelector] = None,
        requester: Optional[str] = None,
    ) -> ArtifactDetails:
        """
        Run one conversational update turn.

        Records the user message, a new version when content came back and
        the assistant commentary, and moves the artifact into In Progress.
        """
        return await self._interact(artifact_id, user_message, selector, requester)

    async def stream_interact_artifact(
        self,
        artifact_id: int,
        user_message: str,
        on_chunk: Optional[ChunkCallback] = None,
        selector: Optional[ModelSelector] = None,
        requester: Optional[str] = None,
    ) -> ArtifactDetails:
        """As ``interact_artifact``, streaming deltas to ``on_chunk``."""
        return await self._interact(
            artifact_id, user_message, selector, requester, stream=True, on_chunk=on_chunk
        )

    async def transition_artifact(
        self,
        artifact_id: int,
        target_state_id: int,
        requester: Optional[str] = None,
    ) -> ArtifactDetails:
        """
        Move an artifact to another state.

        Approved -> In Progress duplicates the approved content into a new
        version so the approved version is never edited.

        Raises:
            UnknownStateError: If ``target_state_id`` is not a state
            InvalidTransitionError: If the transition is not allowed
            DependencyNotApprovedError: If entering In Progress with unmet dependencies
        """
        artifact, project = await self._load_artifact(artifact_id, requester)
        artifact_type = self._catalog.get_artifact_type(artifact.artifact_type_id)
        target = ArtifactState.from_id(target_state_id)

        state_machine.validate_transition(artifact.state, target)
        if target == ArtifactState.IN_PROGRESS:
            await self._require_startable(project, artifact_type)

        artifact = await self._enter_state(artifact, target, requester)
        artifact = await self._store.save_artifact(artifact)
        logger.info(f"Artifact {artifact.id} moved to '{artifact.state.value}'")
        return ArtifactDetails(artifact=await self._view(artifact, artifact_type))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _interact(
        self,
        artifact_id: int,
        user_message: str,
        selector: Optional[ModelSelector],
        requester: Optional[str],
        stream: bool = False,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> ArtifactDetails:
        if not user_message or not user_message.strip():
            raise ValidationError("User message must not be empty")

        artifact, project = await self._load_artifact(artifact_id, requester)
        artifact_type = self._catalog.get_artifact_type(artifact.artifact_type_id)

        entering = artifact.state != ArtifactState.IN_PROGRESS
        if entering:
            state_machine.validate_transition(artifact.state, ArtifactState.IN_PROGRESS)
            await self._require_startable(project, artifact_type)

        resetting = (
            state_machine.is_reopen(artifact.state, ArtifactState.IN_PROGRESS)
            and self._settings.reopen_history_policy == "reset"
        )
        history: List[Message] = []
        if not resetting:
            history = _to_messages(await self._store.list_interactions(
                artifact.id,
                since_sequence=artifact.history_floor,
                limit=self._settings.history_window,
            ))

        bundle = await self._context.assemble(project, artifact, is_update=True, user_message=user_message)
        reply = await self._respond(bundle, project, artifact_type, history, selector, stream, on_chunk)

        if entering:
            artifact = await self._enter_state(artifact, ArtifactState.IN_PROGRESS, requester)

        await self._store.add_interaction(
            artifact.id, MessageRole.USER, user_message, artifact.current_version_id
        )
        if reply.content:
            version = await self._store.add_version(artifact.id, reply.content, created_by=requester)
            artifact.current_version_id = version.id

        messages: List[Message] = []
        if reply.commentary:
            await self._store.add_interaction(
                artifact.id, MessageRole.ASSISTANT, reply.commentary, artifact.current_version_id
            )
            messages.append(Message.assistant(reply.commentary))

        artifact = await self._store.save_artifact(artifact)
        return ArtifactDetails(artifact=await self._view(artifact, artifact_type), messages=messages)

    async def _respond(
        self,
        bundle: ContextBundle,
        project: Project,
        artifact_type: ArtifactType,
        history: List[Message],
        selector: Optional[ModelSelector],
        stream: bool = False,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> AssistantReply:
        return await self._assistant.respond(
            bundle,
            self._catalog.get_project_type(project.project_type_id),
            artifact_type,
            self._catalog.get_phase(artifact_type.phase_id).name,
            history=history,
            selector=selector,
            stream=stream,
            on_chunk=on_chunk,
        )

    async def _enter_state(
        self,
        artifact: Artifact,
        target: ArtifactState,
        requester: Optional[str],
    ) -> Artifact:
        """Apply a validated transition, duplicating the version on reopen."""
        reopening = state_machine.is_reopen(artifact.state, target)
        updated = state_machine.apply(artifact, target)
        if not reopening:
            return updated

        version = await self._store.add_version(
            updated.id, await self._current_content(updated), created_by=requester
        )
        updated.current_version_id = version.id

        if self._settings.reopen_history_policy == "reset":
            last = await self._store.list_interactions(updated.id, limit=1)
            updated.history_floor = (last[-1].sequence_number + 1) if last else 1
        return updated

    async def _require_startable(self, project: Project, artifact_type: ArtifactType) -> None:
        graph = self._catalog.graph_for(project.project_type_id)
        artifacts = await self._store.list_artifacts(project.id)
        approved = approved_type_ids(
            (a.artifact_type_id, a.state == ArtifactState.APPROVED) for a in artifacts
        )
        missing = graph.missing_dependencies(artifact_type.id, approved)
        if missing:
            raise DependencyNotApprovedError(
                artifact_type.name, [graph.name_of(type_id) for type_id in missing]
            )

    async def _load_project(self, project_id: int, requester: Optional[str]) -> Project:
        project = await self._store.get_project(project_id)
        if project is None or not _visible_to(project, requester):
            raise ProjectNotFoundError(project_id)
        return project

    async def _load_artifact(
        self,
        artifact_id: int,
        requester: Optional[str],
    ) -> Tuple[Artifact, Project]:
        artifact = await self._store.get_artifact(artifact_id)
        if artifact is None:
            raise ArtifactNotFoundError(artifact_id)
        project = await self._store.get_project(artifact.project_id)
        if project is None or not _visible_to(project, requester):
            raise ArtifactNotFoundError(artifact_id)
        return artifact, project

    async def _current_content(self, artifact: Artifact) -> str:
        if artifact.current_version_id is None:
            return ""
        version = await self._store.get_version(artifact.current_version_id)
        return version.content if version else ""

    async def _view(self, artifact: Artifact, artifact_type: ArtifactType) -> ArtifactView:
        version = None
        if artifact.current_version_id is not None:
            version = await self._store.get_version(artifact.current_version_id)
        return ArtifactView(
            artifact_id=artifact.id,
            name=artifact.name,
            artifact_type_id=artifact_type.id,
            artifact_type_name=artifact_type.name,
            phase_name=self._catalog.get_phase(artifact_type.phase_id).name,
            state=artifact.state,
            available_transitions=state_machine.available_transitions(artifact.state),
            dependency_type_ids=self._catalog.graph_for(artifact_type.project_type_id)
            .dependencies_of(artifact_type.id),
            version_number=version.version_number if version else None,
            content=version.content if version else None,
        )

    def _placeholder(self, artifact_type: ArtifactType) -> ArtifactView:
        return ArtifactView(
            artifact_id=None,
            name=f"New {artifact_type.name}",
            artifact_type_id=artifact_type.id,
            artifact_type_name=artifact_type.name,
            phase_name=self._catalog.get_phase(artifact_type.phase_id).name,
            state=state_machine.INITIAL_STATE,
            available_transitions=state_machine.available_transitions(state_machine.INITIAL_STATE),
            dependency_type_ids=self._catalog.graph_for(artifact_type.project_type_id)
            .dependencies_of(artifact_type.id),
        )


def _visible_to(project: Project, requester: Optional[str]) -> bool:
    """Owned projects are visible only to their owner; unowned ones to everyone."""
    return requester is None or project.owner_id is None or project.owner_id == requester


def _to_messages(interactions: List[Interaction]) -> List[Message]:
    return [
        Message.user(i.content) if i.role == MessageRole.USER else Message.assistant(i.content)
        for i in interactions
    ]
