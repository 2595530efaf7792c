"""
Challenges: formal disputes against one aspect of a node.

Lifecycle:
    open -> resolved    (requires resolution text)
    open -> withdrawn
    open -> superseded  (challenged node was refuted or archived)

All non-open statuses are terminal.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..errors import InvalidInputError, InvalidTransitionError
from ..schema.severity import (
    DEFAULT_SEVERITY,
    ChallengeSeverity,
    ChallengeStatus,
    coerce_challenge_status,
    coerce_severity,
    is_blocking_severity,
)
from ..schema.target import ChallengeTarget, coerce_challenge_target
from ..types.node_id import NodeID, NodeIDLike, as_node_id
from ..types.timestamps import ensure_utc, from_iso, to_iso, utc_now


@dataclass
class Challenge:
    """
    A dispute raised against a node.

    Attributes:
        id: Unique challenge ID
        target_id: Node under dispute
        target: Aspect of the node being disputed
        reason: Why the challenger objects
        severity: critical and major block acceptance
        status: Lifecycle status
        resolution: Resolution text (set only when resolved)
        created: When the challenge was raised
        resolved_at: When it left the open status
        raised_by: Agent that raised it, if known
    """
    id: str
    target_id: NodeID
    target: ChallengeTarget
    reason: str
    severity: ChallengeSeverity = DEFAULT_SEVERITY
    status: ChallengeStatus = ChallengeStatus.OPEN
    resolution: str = ""
    created: datetime = field(default_factory=utc_now)
    resolved_at: Optional[datetime] = None
    raised_by: str = ""

    def __post_init__(self):
        self.target_id = as_node_id(self.target_id)
        self.target = coerce_challenge_target(self.target)
        self.severity = coerce_severity(self.severity)
        self.status = coerce_challenge_status(self.status)
        self.created = ensure_utc(self.created)
        if self.resolved_at is not None:
            self.resolved_at = ensure_utc(self.resolved_at)

    @classmethod
    def create(
        cls,
        challenge_id: str,
        target_id: NodeIDLike,
        target: Any,
        reason: str,
        severity: Any = DEFAULT_SEVERITY,
        raised_by: str = "",
        created: Optional[datetime] = None,
    ) -> "Challenge":
        """
        Create an open challenge.

        Raises:
            InvalidInputError: empty ID or reason
            InvalidStateError: unknown target or severity
        """
        if not challenge_id or not challenge_id.strip():
            raise InvalidInputError("challenge ID must not be empty")
        if not reason or not reason.strip():
            raise InvalidInputError("challenge reason must not be empty", challenge_id=challenge_id)
        return cls(
            id=challenge_id,
            target_id=target_id,
            target=target,
            reason=reason,
            severity=severity,
            raised_by=raised_by,
            created=created or utc_now(),
        )

    @property
    def is_open(self) -> bool:
        return self.status == ChallengeStatus.OPEN

    @property
    def is_blocking(self) -> bool:
        """Open and of a severity that blocks acceptance."""
        return self.is_open and is_blocking_severity(self.severity)

    def _require_open(self, to_status: ChallengeStatus) -> None:
        if not self.is_open:
            raise InvalidTransitionError(
                self.status,
                to_status,
                f"challenge {self.id} is already {self.status.value}",
            )

    def resolve(self, resolution: str, now: Optional[datetime] = None) -> None:
        """
        Close the challenge as answered.

        Raises:
            InvalidInputError: resolution text is empty
            InvalidTransitionError: challenge is not open
        """
        if not resolution or not resolution.strip():
            raise InvalidInputError("resolution text must not be empty", challenge_id=self.id)
        self._require_open(ChallengeStatus.RESOLVED)
        self.status = ChallengeStatus.RESOLVED
        self.resolution = resolution
        self.resolved_at = now or utc_now()

    def withdraw(self, now: Optional[datetime] = None) -> None:
        """Close the challenge at the challenger's request."""
        self._require_open(ChallengeStatus.WITHDRAWN)
        self.status = ChallengeStatus.WITHDRAWN
        self.resolved_at = now or utc_now()

    def supersede(self, now: Optional[datetime] = None) -> None:
        self._require_open(ChallengeStatus.SUPERSEDED)
        self.status = ChallengeStatus.SUPERSEDED
        self.resolved_at = now or utc_now()

    def snapshot(self) -> "Challenge":
        return dataclasses.replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "target_id": str(self.target_id),
            "target": self.target.value,
            "reason": self.reason,
            "severity": self.severity.value,
            "status": self.status.value,
            "resolution": self.resolution,
            "created": to_iso(self.created),
            "resolved_at": to_iso(self.resolved_at),
            "raised_by": self.raised_by,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Challenge":
        return cls(
            id=data["id"],
            target_id=data["target_id"],
            target=data["target"],
            reason=data["reason"],
            severity=data.get("severity", DEFAULT_SEVERITY),
            status=data.get("status", ChallengeStatus.OPEN),
            resolution=data.get("resolution", ""),
            created=from_iso(data.get("created")) or utc_now(),
            resolved_at=from_iso(data.get("resolved_at")),
            raised_by=data.get("raised_by", ""),
        )
