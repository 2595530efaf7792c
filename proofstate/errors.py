"""
Typed errors for the proof-state engine.

Every rejected operation raises one of the exceptions below at the point of
the offending call. Nothing is coerced silently and no store operation is
partially applied when it raises.

Each error carries:
- code: ErrorCode identifying the failure kind
- details: structured context (node IDs, challenge IDs, ...)
- exit_code: suggested process exit code for command-line front ends
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ErrorCode(str, Enum):
    """Failure kinds raised by the engine."""

    # Identity and structure
    PARSE_ERROR = "parse_error"
    DUPLICATE_ID = "duplicate_id"
    MISSING_PARENT = "missing_parent"
    NODE_NOT_FOUND = "node_not_found"
    CHALLENGE_NOT_FOUND = "challenge_not_found"
    CYCLIC_DEPENDENCY = "cyclic_dependency"
    DEPTH_EXCEEDED = "depth_exceeded"
    CHILD_LIMIT_EXCEEDED = "child_limit_exceeded"
    CHALLENGE_LIMIT_EXCEEDED = "challenge_limit_exceeded"
    SCOPE_VIOLATION = "scope_violation"
    INVALID_INPUT = "invalid_input"

    # State machines
    INVALID_STATE = "invalid_state"
    INVALID_TRANSITION = "invalid_transition"

    # Multi-agent workflow
    ALREADY_CLAIMED = "already_claimed"
    NOT_CLAIMED_BY_AGENT = "not_claimed_by_agent"
    BLOCKED_BY_CHALLENGE = "blocked_by_challenge"
    VALIDATION_DEPS_NOT_MET = "validation_deps_not_met"

    # Derived state and persistence
    TAINT_PROPAGATION = "taint_propagation"
    LEDGER_INCONSISTENT = "ledger_inconsistent"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    LEDGER_LOCK_TIMEOUT = "ledger_lock_timeout"


# Exit codes consumed by command-line front ends:
# 1 = retry may succeed, 2 = blocked on other work, 3 = bad request, 4 = corruption
_EXIT_CODES: Dict[ErrorCode, int] = {
    ErrorCode.ALREADY_CLAIMED: 1,
    ErrorCode.NOT_CLAIMED_BY_AGENT: 1,
    ErrorCode.CONCURRENT_MODIFICATION: 1,
    ErrorCode.LEDGER_LOCK_TIMEOUT: 1,
    ErrorCode.BLOCKED_BY_CHALLENGE: 2,
    ErrorCode.VALIDATION_DEPS_NOT_MET: 2,
    ErrorCode.CHALLENGE_LIMIT_EXCEEDED: 2,
    ErrorCode.LEDGER_INCONSISTENT: 4,
    ErrorCode.TAINT_PROPAGATION: 4,
}


class ProofStateError(Exception):
    """Base class for all engine errors."""

    code: ErrorCode = ErrorCode.INVALID_INPUT

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details: Dict[str, Any] = details
        super().__init__(message)

    @property
    def exit_code(self) -> int:
        """Process exit code suggested for this error."""
        return _EXIT_CODES.get(self.code, 3)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": {k: _jsonable(v) for k, v in self.details.items()},
        }

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


def _jsonable(value: Any) -> Any:
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


class ParseError(ProofStateError, ValueError):
    """Raised when a NodeID string is malformed."""

    code = ErrorCode.PARSE_ERROR

    def __init__(self, text: Any, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"invalid node id {text!r}: {reason}", text=text, reason=reason)


class InvalidInputError(ProofStateError, ValueError):
    """Raised for empty or otherwise unusable operation arguments."""

    code = ErrorCode.INVALID_INPUT


class DuplicateIDError(ProofStateError):
    """Raised when an entity ID is already present in the store."""

    code = ErrorCode.DUPLICATE_ID

    def __init__(self, kind: str, entity_id: Any):
        self.kind = kind
        self.entity_id = str(entity_id)
        super().__init__(
            f"{kind} {self.entity_id} already exists",
            kind=kind,
            entity_id=self.entity_id,
        )


class MissingParentError(ProofStateError):
    """Raised when a non-root node is added before its parent."""

    code = ErrorCode.MISSING_PARENT

    def __init__(self, node_id: Any, parent_id: Any):
        self.node_id = str(node_id)
        self.parent_id = str(parent_id)
        super().__init__(
            f"cannot add node {self.node_id}: parent {self.parent_id} does not exist",
            node_id=self.node_id,
            parent_id=self.parent_id,
        )


class NodeNotFoundError(ProofStateError):
    """Raised when an operation references an unknown node."""

    code = ErrorCode.NODE_NOT_FOUND

    def __init__(self, node_id: Any, context: str = ""):
        self.node_id = str(node_id)
        message = f"node {self.node_id} not found"
        if context:
            message = f"{context}: {message}"
        super().__init__(message, node_id=self.node_id)


class ChallengeNotFoundError(ProofStateError):
    """Raised when an operation references an unknown challenge."""

    code = ErrorCode.CHALLENGE_NOT_FOUND

    def __init__(self, challenge_id: str):
        self.challenge_id = challenge_id
        super().__init__(f"challenge {challenge_id} not found", challenge_id=challenge_id)


class InvalidStateError(ProofStateError, ValueError):
    """Raised when a value is not a member of a schema enumeration."""

    code = ErrorCode.INVALID_STATE

    def __init__(self, kind: str, value: Any, allowed: Optional[Iterable[str]] = None):
        self.kind = kind
        self.value = value
        self.allowed = list(allowed or [])
        message = f"invalid {kind}: {value!r}"
        if self.allowed:
            message += f", must be one of: {', '.join(self.allowed)}"
        super().__init__(message, kind=kind, value=value, allowed=self.allowed)


class InvalidTransitionError(ProofStateError):
    """Raised when a state machine does not allow the requested move."""

    code = ErrorCode.INVALID_TRANSITION

    def __init__(self, from_state: Any, to_state: Any, reason: str = "", node_id: Any = None):
        self.from_state = getattr(from_state, "value", from_state)
        self.to_state = getattr(to_state, "value", to_state)
        self.node_id = str(node_id) if node_id is not None else None
        message = f"invalid transition from {self.from_state!r} to {self.to_state!r}"
        if reason:
            message += f": {reason}"
        if self.node_id:
            message = f"node {self.node_id}: {message}"
        super().__init__(
            message,
            from_state=self.from_state,
            to_state=self.to_state,
            node_id=self.node_id,
        )


class CyclicDependencyError(ProofStateError):
    """Raised when dependency edges would form a cycle."""

    code = ErrorCode.CYCLIC_DEPENDENCY

    def __init__(self, cycle: Iterable[Any], relation: str = "dependencies"):
        self.cycle: List[str] = [str(n) for n in cycle]
        self.relation = relation
        path = " -> ".join(self.cycle)
        super().__init__(
            f"cycle in {relation}: {path}",
            cycle=self.cycle,
            relation=relation,
        )


class AlreadyClaimedError(ProofStateError):
    """Raised when a node is claimed by another agent."""

    code = ErrorCode.ALREADY_CLAIMED

    def __init__(self, node_id: Any, claimed_by: str, agent: str):
        self.node_id = str(node_id)
        self.claimed_by = claimed_by
        self.agent = agent
        super().__init__(
            f"node {self.node_id} is already claimed by {claimed_by}",
            node_id=self.node_id,
            claimed_by=claimed_by,
            agent=agent,
        )


class NotClaimedByAgentError(ProofStateError):
    """Raised when an agent acts on a node it does not hold."""

    code = ErrorCode.NOT_CLAIMED_BY_AGENT

    def __init__(self, node_id: Any, agent: str, claimed_by: str = ""):
        self.node_id = str(node_id)
        self.agent = agent
        self.claimed_by = claimed_by
        holder = claimed_by or "nobody"
        super().__init__(
            f"node {self.node_id} is not claimed by {agent} (held by {holder})",
            node_id=self.node_id,
            agent=agent,
            claimed_by=claimed_by,
        )


class BlockedByChallengeError(ProofStateError):
    """Raised when open critical/major challenges prevent acceptance."""

    code = ErrorCode.BLOCKED_BY_CHALLENGE

    def __init__(self, node_id: Any, challenge_ids: Iterable[str]):
        self.node_id = str(node_id)
        self.challenge_ids: List[str] = sorted(challenge_ids)
        super().__init__(
            f"node {self.node_id} has blocking challenges: {', '.join(self.challenge_ids)}",
            node_id=self.node_id,
            challenge_ids=self.challenge_ids,
        )


# Alias matching the shorter name used for the store-level check
Blocked = BlockedByChallengeError


class ValidationDepsNotMetError(ProofStateError):
    """Raised when a node is accepted before its validation dependencies."""

    code = ErrorCode.VALIDATION_DEPS_NOT_MET

    def __init__(self, node_id: Any, pending: Iterable[Any]):
        self.node_id = str(node_id)
        self.pending: List[str] = [str(p) for p in pending]
        super().__init__(
            f"cannot accept node {self.node_id}: validation dependencies not yet "
            f"validated: {', '.join(self.pending)}",
            node_id=self.node_id,
            pending=self.pending,
        )


class DepthExceededError(ProofStateError):
    """Raised when a refinement would exceed the configured depth."""

    code = ErrorCode.DEPTH_EXCEEDED

    def __init__(self, node_id: Any, depth: int, max_depth: int):
        self.node_id = str(node_id)
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(
            f"node {self.node_id} depth {depth} exceeds max_depth {max_depth}",
            node_id=self.node_id,
            depth=depth,
            max_depth=max_depth,
        )


class ChildLimitExceededError(ProofStateError):
    """Raised when a parent already has the configured number of children."""

    code = ErrorCode.CHILD_LIMIT_EXCEEDED

    def __init__(self, parent_id: Any, max_children: int):
        self.parent_id = str(parent_id)
        self.max_children = max_children
        super().__init__(
            f"node {self.parent_id} already has {max_children} children",
            parent_id=self.parent_id,
            max_children=max_children,
        )


class ChallengeLimitExceededError(ProofStateError):
    """Raised when a node already carries the configured number of open challenges."""

    code = ErrorCode.CHALLENGE_LIMIT_EXCEEDED

    def __init__(self, node_id: Any, count: int, max_challenges: int):
        self.node_id = str(node_id)
        self.count = count
        self.max_challenges = max_challenges
        super().__init__(
            f"node {self.node_id} has {count} open challenges, maximum is {max_challenges}",
            node_id=self.node_id,
            count=count,
            max_challenges=max_challenges,
        )


class ScopeViolationError(ProofStateError):
    """Raised when a scope is opened twice, closed without being open, or referenced while closed."""

    code = ErrorCode.SCOPE_VIOLATION

    def __init__(self, node_id: Any, reason: str, scope_id: Any = None):
        self.node_id = str(node_id)
        self.reason = reason
        self.scope_id = str(scope_id) if scope_id is not None else None
        message = f"node {self.node_id}: {reason}"
        super().__init__(message, node_id=self.node_id, reason=reason, scope_id=self.scope_id)


class TaintPropagationError(ProofStateError):
    """Raised when taint cannot be resolved to a fixed point."""

    code = ErrorCode.TAINT_PROPAGATION

    def __init__(self, node_id: Any, reason: str):
        self.node_id = str(node_id)
        self.reason = reason
        super().__init__(
            f"cannot resolve taint for node {self.node_id}: {reason}",
            node_id=self.node_id,
            reason=reason,
        )


class LedgerInconsistentError(ProofStateError):
    """Raised when the event ledger is corrupt or cannot be replayed."""

    code = ErrorCode.LEDGER_INCONSISTENT

    def __init__(self, reason: str, path: Any = None, line: Optional[int] = None):
        self.reason = reason
        self.path = str(path) if path is not None else None
        self.line = line
        location = ""
        if self.path:
            location = f" ({self.path}" + (f", line {line}" if line else "") + ")"
        super().__init__(f"ledger inconsistent{location}: {reason}", path=self.path, line=line)


class ConcurrentModificationError(ProofStateError):
    """Raised when another writer appended to the ledger first."""

    code = ErrorCode.CONCURRENT_MODIFICATION

    def __init__(self, expected_seq: int, actual_seq: int, operation: str = ""):
        self.expected_seq = expected_seq
        self.actual_seq = actual_seq
        self.operation = operation
        prefix = f"{operation}: " if operation else ""
        super().__init__(
            f"{prefix}proof was modified concurrently "
            f"(expected sequence {expected_seq}, found {actual_seq}); reload and retry",
            expected_seq=expected_seq,
            actual_seq=actual_seq,
            operation=operation,
        )


class LedgerLockTimeoutError(ProofStateError):
    """Raised when the ledger write lock cannot be acquired in time."""

    code = ErrorCode.LEDGER_LOCK_TIMEOUT

    def __init__(self, path: Any, timeout: float):
        self.path = str(path)
        self.timeout = timeout
        super().__init__(
            f"could not acquire ledger lock {self.path} within {timeout:.2f}s",
            path=self.path,
            timeout=timeout,
        )
