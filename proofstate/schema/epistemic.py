"""
Epistemic state machine.

Epistemic state records whether a node is believed true. Transitions follow
a fixed table; admitted, refuted and archived are terminal.

Transitions:
    pending          -> validated | admitted | refuted | archived
    validated        -> needs_refinement
    needs_refinement -> validated | admitted | refuted | archived
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, FrozenSet, List, Mapping

from ..errors import InvalidTransitionError
from .base import coerce_enum


class EpistemicState(str, Enum):
    """Belief status of a node."""
    PENDING = "pending"
    VALIDATED = "validated"
    ADMITTED = "admitted"
    REFUTED = "refuted"
    ARCHIVED = "archived"
    NEEDS_REFINEMENT = "needs_refinement"


@dataclass(frozen=True)
class EpistemicStateInfo:
    id: EpistemicState
    description: str
    is_final: bool = False
    introduces_taint: bool = False


EPISTEMIC_STATE_INFO: Mapping[EpistemicState, EpistemicStateInfo] = MappingProxyType({
    EpistemicState.PENDING: EpistemicStateInfo(
        EpistemicState.PENDING,
        "Awaiting verification",
    ),
    EpistemicState.VALIDATED: EpistemicStateInfo(
        EpistemicState.VALIDATED,
        "Accepted by a verifier",
        is_final=True,
    ),
    EpistemicState.ADMITTED: EpistemicStateInfo(
        EpistemicState.ADMITTED,
        "Accepted without full verification (introduces taint)",
        is_final=True,
        introduces_taint=True,
    ),
    EpistemicState.REFUTED: EpistemicStateInfo(
        EpistemicState.REFUTED,
        "Shown to be false",
        is_final=True,
    ),
    EpistemicState.ARCHIVED: EpistemicStateInfo(
        EpistemicState.ARCHIVED,
        "Abandoned branch",
        is_final=True,
    ),
    EpistemicState.NEEDS_REFINEMENT: EpistemicStateInfo(
        EpistemicState.NEEDS_REFINEMENT,
        "Validated node reopened for further decomposition",
    ),
})

EPISTEMIC_TRANSITIONS: Mapping[EpistemicState, FrozenSet[EpistemicState]] = MappingProxyType({
    EpistemicState.PENDING: frozenset({
        EpistemicState.VALIDATED,
        EpistemicState.ADMITTED,
        EpistemicState.REFUTED,
        EpistemicState.ARCHIVED,
    }),
    EpistemicState.VALIDATED: frozenset({EpistemicState.NEEDS_REFINEMENT}),
    EpistemicState.NEEDS_REFINEMENT: frozenset({
        EpistemicState.VALIDATED,
        EpistemicState.ADMITTED,
        EpistemicState.REFUTED,
        EpistemicState.ARCHIVED,
    }),
    EpistemicState.ADMITTED: frozenset(),
    EpistemicState.REFUTED: frozenset(),
    EpistemicState.ARCHIVED: frozenset(),
})

# States that count as "accepted" for acceptance blocking and job discovery
POSITIVE_TERMINAL_STATES: FrozenSet[EpistemicState] = frozenset({
    EpistemicState.VALIDATED,
    EpistemicState.ADMITTED,
})


def coerce_epistemic_state(value: Any) -> EpistemicState:
    return coerce_enum(EpistemicState, value, "epistemic state")


def get_epistemic_state_info(state: Any) -> EpistemicStateInfo:
    return EPISTEMIC_STATE_INFO[coerce_epistemic_state(state)]


def is_final(state: Any) -> bool:
    return get_epistemic_state_info(state).is_final


def introduces_taint(state: Any) -> bool:
    return get_epistemic_state_info(state).introduces_taint


def is_positive_terminal(state: Any) -> bool:
    return coerce_epistemic_state(state) in POSITIVE_TERMINAL_STATES


def is_terminal(state: Any) -> bool:
    """True when no transition leaves the state."""
    return not EPISTEMIC_TRANSITIONS[coerce_epistemic_state(state)]


def allowed_epistemic_transitions(state: Any) -> List[EpistemicState]:
    allowed = EPISTEMIC_TRANSITIONS[coerce_epistemic_state(state)]
    return [s for s in EpistemicState if s in allowed]


def validate_epistemic_transition(from_state: Any, to_state: Any) -> None:
    """
    Check an epistemic move against the transition table.

    Args:
        from_state: Current state (member or string value)
        to_state: Requested state (member or string value)

    Raises:
        InvalidStateError: either value is not an epistemic state
        InvalidTransitionError: the move is not in the table
    """
    source = coerce_epistemic_state(from_state)
    target = coerce_epistemic_state(to_state)
    allowed = EPISTEMIC_TRANSITIONS[source]
    if target in allowed:
        return
    if not allowed:
        reason = f"{source.value} is terminal"
    else:
        reason = "allowed: " + ", ".join(s.value for s in allowed_epistemic_transitions(source))
    raise InvalidTransitionError(source, target, reason)
