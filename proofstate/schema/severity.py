"""
Challenge severities and challenge status.

Only critical and major challenges block acceptance of the challenged node.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from .base import coerce_enum


class ChallengeSeverity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
    NOTE = "note"


@dataclass(frozen=True)
class SeverityInfo:
    id: ChallengeSeverity
    description: str
    blocks_acceptance: bool


SEVERITY_INFO: Mapping[ChallengeSeverity, SeverityInfo] = MappingProxyType({
    ChallengeSeverity.CRITICAL: SeverityInfo(
        ChallengeSeverity.CRITICAL,
        "Fundamental error that must be fixed",
        blocks_acceptance=True,
    ),
    ChallengeSeverity.MAJOR: SeverityInfo(
        ChallengeSeverity.MAJOR,
        "Significant issue that should be addressed",
        blocks_acceptance=True,
    ),
    ChallengeSeverity.MINOR: SeverityInfo(
        ChallengeSeverity.MINOR,
        "Minor issue that could be improved",
        blocks_acceptance=False,
    ),
    ChallengeSeverity.NOTE: SeverityInfo(
        ChallengeSeverity.NOTE,
        "Clarification request or suggestion",
        blocks_acceptance=False,
    ),
})

DEFAULT_SEVERITY = ChallengeSeverity.MAJOR


class ChallengeStatus(str, Enum):
    """Lifecycle status of a challenge. Everything except open is terminal."""
    OPEN = "open"
    RESOLVED = "resolved"
    WITHDRAWN = "withdrawn"
    SUPERSEDED = "superseded"
    """Closed automatically because the challenged node was refuted or archived."""


def coerce_severity(value: Any) -> ChallengeSeverity:
    return coerce_enum(ChallengeSeverity, value, "challenge severity")


def coerce_challenge_status(value: Any) -> ChallengeStatus:
    return coerce_enum(ChallengeStatus, value, "challenge status")


def is_blocking_severity(severity: Any) -> bool:
    """True for critical and major."""
    return SEVERITY_INFO[coerce_severity(severity)].blocks_acceptance
