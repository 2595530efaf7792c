"""
Taint states.

Taint is derived from epistemic states along dependency edges and is never
set directly by agents.
"""

from enum import Enum
from typing import Any

from .base import coerce_enum


class TaintState(str, Enum):
    """Whether a node rests on unverified ground."""
    CLEAN = "clean"
    SELF_ADMITTED = "self_admitted"
    TAINTED = "tainted"
    UNRESOLVED = "unresolved"
    """Not yet recomputed since the last change upstream."""


# Taint values that make a dependent node tainted
CONTAGIOUS_TAINT = frozenset({TaintState.SELF_ADMITTED, TaintState.TAINTED})


def coerce_taint_state(value: Any) -> TaintState:
    return coerce_enum(TaintState, value, "taint state")


def is_contagious(state: Any) -> bool:
    return coerce_taint_state(state) in CONTAGIOUS_TAINT
