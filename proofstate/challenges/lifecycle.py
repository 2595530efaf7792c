"""
Challenge lifecycle manager.

Raises, resolves and withdraws challenges against nodes in a ProofState and
answers the blocking question: a node may reach validated or admitted only
while it has no open critical/major challenge.
"""

import logging
from typing import Any, List, Optional

from ..config import EngineConfig
from ..errors import BlockedByChallengeError, InvalidInputError
from ..node.challenge import Challenge
from ..node.hashing import generate_id
from ..schema.severity import ChallengeSeverity, coerce_severity, is_blocking_severity
from ..state.store import ProofState
from ..taint.propagate import ensure_resolved
from ..types.node_id import NodeIDLike, as_node_id

logger = logging.getLogger(__name__)

CHALLENGE_ID_PREFIX = "ch"


class ChallengeManager:
    """
    Governs challenge state transitions for one proof.

    Args:
        state: Store holding the challenged nodes
        config: Engine configuration (default severity); defaults to the
            store's config
    """

    def __init__(self, state: ProofState, config: Optional[EngineConfig] = None):
        self.state = state
        self.config = config or state.config

    def build_challenge(
        self,
        target_id: NodeIDLike,
        target: Any,
        reason: str,
        severity: Optional[Any] = None,
        raised_by: str = "",
        challenge_id: Optional[str] = None,
    ) -> Challenge:
        """
        Validate arguments and build an open challenge without storing it.

        Raises:
            NodeNotFoundError: unknown node
            InvalidInputError: empty reason
            InvalidStateError: unknown target or severity, or one the schema
                profile excludes
        """
        node_id = as_node_id(target_id)
        self.state.require_node(node_id)
        if not reason or not reason.strip():
            raise InvalidInputError("challenge reason must not be empty", node_id=str(node_id))
        level: ChallengeSeverity = (
            coerce_severity(severity) if severity is not None else self.config.default_severity
        )
        challenge = Challenge.create(
            challenge_id or generate_id(CHALLENGE_ID_PREFIX),
            node_id,
            target,
            reason,
            severity=level,
            raised_by=raised_by,
        )
        profile = self.config.schema_profile
        profile.require("challenge_targets", challenge.target)
        profile.require("challenge_severities", challenge.severity)
        return challenge

    def raise_challenge(
        self,
        target_id: NodeIDLike,
        target: Any,
        reason: str,
        severity: Optional[Any] = None,
        raised_by: str = "",
        challenge_id: Optional[str] = None,
    ) -> Challenge:
        """
        Open a challenge against a node.

        Args:
            target_id: Node under dispute
            target: Aspect disputed (ChallengeTarget or its value)
            reason: Why the challenger objects
            severity: Defaults to config.default_severity
            raised_by: Challenging agent
            challenge_id: Explicit ID (generated "ch-<hex>" if omitted)

        Raises:
            NodeNotFoundError: unknown node
            InvalidInputError: empty reason
            InvalidStateError: unknown target or severity, or one the schema
                profile excludes
            ChallengeLimitExceededError: the node has too many open challenges
        """
        challenge = self.build_challenge(
            target_id, target, reason, severity, raised_by, challenge_id
        )
        stored = self.state.add_challenge(challenge)
        logger.info(
            f"[CHALLENGES] Raised {stored.id} on {stored.target_id} "
            f"({stored.severity.value}, {stored.target.value})"
        )
        return stored

    def resolve(self, challenge_id: str, resolution: str) -> Challenge:
        """
        Raises:
            ChallengeNotFoundError: unknown challenge
            InvalidInputError: empty resolution text
            InvalidTransitionError: challenge is not open
        """
        challenge = self.state.resolve_challenge(challenge_id, resolution)
        logger.info(f"[CHALLENGES] Resolved {challenge_id}")
        return challenge

    def withdraw(self, challenge_id: str) -> Challenge:
        """
        Raises:
            ChallengeNotFoundError: unknown challenge
            InvalidTransitionError: challenge is not open
        """
        challenge = self.state.withdraw_challenge(challenge_id)
        logger.info(f"[CHALLENGES] Withdrew {challenge_id}")
        return challenge

    def blocking_challenges(self, node_id: NodeIDLike) -> List[Challenge]:
        """Open critical/major challenges on the node, ordered by ID."""
        with self.state.lock:
            ensure_resolved(self.state)
            return self.state.blocking_challenges_for(node_id)

    def is_blocked(self, node_id: NodeIDLike) -> bool:
        return bool(self.blocking_challenges(node_id))

    def check_acceptance(self, node_id: NodeIDLike) -> None:
        """
        Raises:
            BlockedByChallengeError: the node has blocking challenges
        """
        blocking = self.blocking_challenges(node_id)
        if blocking:
            raise BlockedByChallengeError(as_node_id(node_id), [c.id for c in blocking])

    def open_challenges(self, node_id: Optional[NodeIDLike] = None) -> List[Challenge]:
        """Open challenges, for one node or the whole proof, ordered by ID."""
        if node_id is None:
            challenges = self.state.open_challenges()
        else:
            challenges = [c for c in self.state.challenges_for(node_id) if c.is_open]
        return sorted(challenges, key=lambda c: c.id)


__all__ = ["ChallengeManager", "CHALLENGE_ID_PREFIX", "is_blocking_severity"]
