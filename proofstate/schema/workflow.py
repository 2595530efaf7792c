"""
Workflow state machine.

Workflow state says who may touch a node. It is orthogonal to the epistemic
state and changes only through claim/release or an explicit move.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, FrozenSet, Mapping

from ..errors import InvalidTransitionError
from .base import coerce_enum


class WorkflowState(str, Enum):
    """Coordination state of a node."""
    AVAILABLE = "available"
    CLAIMED = "claimed"
    BLOCKED = "blocked"


WORKFLOW_TRANSITIONS: Mapping[WorkflowState, FrozenSet[WorkflowState]] = MappingProxyType({
    WorkflowState.AVAILABLE: frozenset({WorkflowState.CLAIMED, WorkflowState.BLOCKED}),
    WorkflowState.CLAIMED: frozenset({WorkflowState.AVAILABLE, WorkflowState.BLOCKED}),
    WorkflowState.BLOCKED: frozenset({WorkflowState.AVAILABLE}),
})


def coerce_workflow_state(value: Any) -> WorkflowState:
    return coerce_enum(WorkflowState, value, "workflow state")


def can_claim(state: Any) -> bool:
    """Only available nodes can be claimed."""
    return coerce_workflow_state(state) == WorkflowState.AVAILABLE


def is_workflow_transition_allowed(from_state: Any, to_state: Any) -> bool:
    return coerce_workflow_state(to_state) in WORKFLOW_TRANSITIONS[coerce_workflow_state(from_state)]


def validate_workflow_transition(from_state: Any, to_state: Any) -> None:
    """
    Check a workflow move against the transition table.

    Raises:
        InvalidStateError: either value is not a workflow state
        InvalidTransitionError: the move is not in the table
    """
    source = coerce_workflow_state(from_state)
    target = coerce_workflow_state(to_state)
    if target not in WORKFLOW_TRANSITIONS[source]:
        raise InvalidTransitionError(source, target, "workflow transition not allowed")
