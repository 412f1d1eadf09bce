"""
Artifact state machine.

Defines the valid states and transitions for artifacts.
Pure module: validates only, no persistence and no side effects. Version
duplication on reopen is the orchestrator's job.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import FrozenSet, List, Tuple

from artifect.domain.errors import InvalidTransitionError
from artifect.domain.models import Artifact, ArtifactState


INITIAL_STATE = ArtifactState.TODO

VALID_TRANSITIONS: FrozenSet[Tuple[ArtifactState, ArtifactState]] = frozenset({
    (ArtifactState.TODO, ArtifactState.IN_PROGRESS),
    (ArtifactState.IN_PROGRESS, ArtifactState.APPROVED),
    (ArtifactState.APPROVED, ArtifactState.IN_PROGRESS),
})


def can_transition(current: ArtifactState, target: ArtifactState) -> bool:
    """Return True if a transition row exists for (current, target)."""
    return (current, target) in VALID_TRANSITIONS


def available_transitions(current: ArtifactState) -> List[ArtifactState]:
    """Legal target states from ``current``, in state-id order."""
    targets = [to for (frm, to) in VALID_TRANSITIONS if frm == current]
    return sorted(targets, key=lambda s: s.state_id)


def validate_transition(current: ArtifactState, target: ArtifactState) -> None:
    """
    Validate an artifact state transition.

    Raises:
        InvalidTransitionError: If the transition is not allowed. A
            transition into the current state is never allowed.
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(
            current.value,
            target.value,
            [s.value for s in available_transitions(current)],
        )


def is_reopen(current: ArtifactState, target: ArtifactState) -> bool:
    """True for Approved -> In Progress, which requires a fresh version."""
    return current == ArtifactState.APPROVED and target == ArtifactState.IN_PROGRESS


def apply(artifact: Artifact, target: ArtifactState) -> Artifact:
    """Return a copy of ``artifact`` in ``target`` state after validation."""
    validate_transition(artifact.state, target)
    return replace(artifact, state=target, updated_at=datetime.now(timezone.utc))
