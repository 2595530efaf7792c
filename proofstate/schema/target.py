"""
Challenge targets: which aspect of a node a challenge disputes.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping

from ..errors import InvalidInputError
from .base import coerce_enum


class ChallengeTarget(str, Enum):
    STATEMENT = "statement"
    INFERENCE = "inference"
    CONTEXT = "context"
    DEPENDENCIES = "dependencies"
    SCOPE = "scope"
    GAP = "gap"
    TYPE_ERROR = "type_error"
    DOMAIN = "domain"
    COMPLETENESS = "completeness"


CHALLENGE_TARGET_DESCRIPTIONS: Mapping[ChallengeTarget, str] = MappingProxyType({
    ChallengeTarget.STATEMENT: "The claim text itself is disputed",
    ChallengeTarget.INFERENCE: "The inference type is inappropriate",
    ChallengeTarget.CONTEXT: "Referenced definitions or assumptions are wrong",
    ChallengeTarget.DEPENDENCIES: "Dependencies on other nodes are incorrect",
    ChallengeTarget.SCOPE: "Scope or local assumption issues",
    ChallengeTarget.GAP: "A logical gap in reasoning",
    ChallengeTarget.TYPE_ERROR: "Type mismatch in mathematical objects",
    ChallengeTarget.DOMAIN: "Domain restriction violation",
    ChallengeTarget.COMPLETENESS: "Missing cases or incomplete argument",
})


def coerce_challenge_target(value: Any) -> ChallengeTarget:
    return coerce_enum(ChallengeTarget, value, "challenge target")


def describe_challenge_target(target: Any) -> str:
    return CHALLENGE_TARGET_DESCRIPTIONS[coerce_challenge_target(target)]


def parse_challenge_targets(text: str) -> List[ChallengeTarget]:
    """
    Parse a comma-separated list of targets.

    Whitespace around entries is ignored and duplicates are dropped while
    keeping first-seen order.

    Raises:
        InvalidInputError: text is empty
        InvalidStateError: an entry is not a known target
    """
    if not text or not text.strip():
        raise InvalidInputError("challenge target list is empty")
    result: List[ChallengeTarget] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            raise InvalidInputError(f"empty entry in challenge target list {text!r}")
        target = coerce_challenge_target(part)
        if target not in result:
            result.append(target)
    return result
