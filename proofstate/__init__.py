"""
proofstate - Proof-State Engine for Multi-Agent Proof Trees.

Coordinates provers and verifiers building a hierarchical proof tree. Each
node carries a workflow state (who may touch it), an epistemic state (is it
believed true) and a taint state (does it rest on unverified ground).

Key Components:
- NodeID: Hierarchical, numerically ordered node addresses ("1.2.3")
- Schema registries: Closed enums and transition tables
- ProofState: Transactional store owning nodes, challenges and context
- TaintPropagator: Explicit fixed-point taint recomputation
- ChallengeManager: Challenge lifecycle and severity-based blocking
- Job discovery: Prover and verifier work queues
- ProofLedger / ProofService: Event-sourced persistence and agent actions

Quick Start:
    from proofstate import ProofService

    service = ProofService("my-proof", base_dir="proofs")
    service.init("For all n, n^2 >= 0", author="alice")
    service.claim("1", "prover-1")
    service.refine("1", "prover-1", "Case n >= 0", node_type="case")
    print(service.jobs().to_dict())
"""

__version__ = "0.1.0"

# Value types
from .types import NodeID, as_node_id, compare_node_ids, sort_node_ids

# Schema
from .schema import (
    NodeType,
    InferenceType,
    WorkflowState,
    EpistemicState,
    TaintState,
    ChallengeTarget,
    ChallengeSeverity,
    ChallengeStatus,
    SchemaProfile,
    validate_epistemic_transition,
    is_blocking_severity,
)

# Entities
from .node import (
    Node,
    Challenge,
    Definition,
    Assumption,
    External,
    ContextRef,
    DefinitionRef,
    AssumptionRef,
    ExternalRef,
    UnknownRef,
    parse_context_ref,
)

# Store and derived state
from .state import ProofState, ContextResolution, ScopeEntry, ScopeInfo, ScopeTracker
from .taint import TaintPropagator, TaintChange, compute_taint, ensure_resolved
from .challenges import ChallengeManager
from .jobs import JobResult, find_jobs, find_jobs_in_state

# Persistence and service
from .ledger import EventType, LedgerEvent, ProofLedger, apply_event, replay, replay_ledger
from .service import ProofService, ProofStatus

# Configuration and errors
from .config import EngineConfig, get_engine_config, reset_engine_config
from .errors import (
    ErrorCode,
    ProofStateError,
    ParseError,
    DuplicateIDError,
    MissingParentError,
    NodeNotFoundError,
    ChallengeNotFoundError,
    InvalidStateError,
    InvalidTransitionError,
    InvalidInputError,
    CyclicDependencyError,
    AlreadyClaimedError,
    NotClaimedByAgentError,
    BlockedByChallengeError,
    ValidationDepsNotMetError,
    DepthExceededError,
    ChildLimitExceededError,
    ChallengeLimitExceededError,
    ScopeViolationError,
    TaintPropagationError,
    LedgerInconsistentError,
    ConcurrentModificationError,
    LedgerLockTimeoutError,
)

__all__ = [
    "__version__",
    # Value types
    "NodeID",
    "as_node_id",
    "compare_node_ids",
    "sort_node_ids",
    # Schema
    "NodeType",
    "InferenceType",
    "WorkflowState",
    "EpistemicState",
    "TaintState",
    "ChallengeTarget",
    "ChallengeSeverity",
    "ChallengeStatus",
    "SchemaProfile",
    "validate_epistemic_transition",
    "is_blocking_severity",
    # Entities
    "Node",
    "Challenge",
    "Definition",
    "Assumption",
    "External",
    "ContextRef",
    "DefinitionRef",
    "AssumptionRef",
    "ExternalRef",
    "UnknownRef",
    "parse_context_ref",
    # Store and derived state
    "ProofState",
    "ContextResolution",
    "ScopeEntry",
    "ScopeInfo",
    "ScopeTracker",
    "TaintPropagator",
    "TaintChange",
    "compute_taint",
    "ensure_resolved",
    "ChallengeManager",
    "JobResult",
    "find_jobs",
    "find_jobs_in_state",
    # Persistence and service
    "EventType",
    "LedgerEvent",
    "ProofLedger",
    "apply_event",
    "replay",
    "replay_ledger",
    "ProofService",
    "ProofStatus",
    # Configuration
    "EngineConfig",
    "get_engine_config",
    "reset_engine_config",
    # Errors
    "ErrorCode",
    "ProofStateError",
    "ParseError",
    "DuplicateIDError",
    "MissingParentError",
    "NodeNotFoundError",
    "ChallengeNotFoundError",
    "InvalidStateError",
    "InvalidTransitionError",
    "InvalidInputError",
    "CyclicDependencyError",
    "AlreadyClaimedError",
    "NotClaimedByAgentError",
    "BlockedByChallengeError",
    "ValidationDepsNotMetError",
    "DepthExceededError",
    "ChildLimitExceededError",
    "ChallengeLimitExceededError",
    "ScopeViolationError",
    "TaintPropagationError",
    "LedgerInconsistentError",
    "ConcurrentModificationError",
    "LedgerLockTimeoutError",
]
