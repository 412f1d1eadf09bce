"""Domain error types.

Every failure the workflow can report to a caller is a typed error with a
human-readable message. Mapping these to transport status codes is the
caller's job.
"""

from typing import List, Optional, Sequence

from artifect.errors import ArtifectError


class ValidationError(ArtifectError):
    """Bad caller input or an illegal request against fixed rules."""
    pass


class NotFoundError(ArtifectError):
    """Referenced entity does not exist (or is not visible to the requester)."""
    pass


class UnknownArtifactTypeError(ValidationError):
    """Artifact type name does not exist in the catalog."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown artifact type: {name}")


class InvalidArtifactTypeError(ValidationError):
    """Artifact type exists but is not part of the project's project type."""

    def __init__(self, name: str, project_type_name: str):
        self.name = name
        self.project_type_name = project_type_name
        super().__init__(
            f"Invalid artifact type: '{name}' is not part of project type '{project_type_name}'"
        )


class InvalidTransitionError(ValidationError):
    """Requested (from, to) state pair has no transition row."""

    def __init__(self, current: str, target: str, valid_targets: Sequence[str] = ()):
        self.current = current
        self.target = target
        self.valid_targets = list(valid_targets)
        super().__init__(
            f"Invalid transition: {current} -> {target}. "
            f"Valid targets from {current}: {self.valid_targets}"
        )


class DuplicateArtifactError(ValidationError):
    """Project already holds an instance of a non-repeatable artifact type."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Project already has an artifact of type '{name}'")


class NoChangesError(ValidationError):
    """Manual update changed neither name nor content."""

    def __init__(self, artifact_id: int):
        self.artifact_id = artifact_id
        super().__init__(f"No changes to apply to artifact {artifact_id}")


class UnknownStateError(ValidationError):
    """State id or name does not match any artifact state."""

    def __init__(self, state: object):
        self.state = state
        super().__init__(f"Unknown artifact state: {state}")


class DependencyCycleError(ValidationError):
    """Type dependencies of a project type form a cycle."""

    def __init__(self, project_type: str, cycle: List[str]):
        self.project_type = project_type
        self.cycle = cycle
        super().__init__(
            f"Dependency cycle in project type '{project_type}': {' -> '.join(cycle)}"
        )


class DependencyNotApprovedError(ArtifectError):
    """Artifact cannot be started until its dependency types are approved."""

    def __init__(self, artifact_type: str, missing: Sequence[str]):
        self.artifact_type = artifact_type
        self.missing = list(missing)
        super().__init__(
            f"Cannot start '{artifact_type}': dependencies not approved: {', '.join(self.missing)}"
        )


class ProjectNotFoundError(NotFoundError):
    """Project not found."""

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project with id {project_id} not found")


class ArtifactNotFoundError(NotFoundError):
    """Artifact not found."""

    def __init__(self, artifact_id: int, detail: Optional[str] = None):
        self.artifact_id = artifact_id
        message = f"Artifact with id {artifact_id} not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
