"""
Schema registries for the proof-state engine.

Closed enumerations with static metadata tables:
- NodeType, InferenceType: what a proof step is and how it is justified
- WorkflowState, EpistemicState, TaintState: the three orthogonal node statuses
- ChallengeTarget, ChallengeSeverity, ChallengeStatus: challenge vocabulary
- SchemaProfile: loadable allow-lists over the registries
"""

from .base import coerce_enum, enum_values
from .node_type import (
    NodeType,
    NodeTypeInfo,
    NODE_TYPE_INFO,
    coerce_node_type,
    get_node_type_info,
    all_node_types,
    opens_scope,
    closes_scope,
)
from .inference import (
    InferenceType,
    InferenceInfo,
    INFERENCE_INFO,
    coerce_inference,
    get_inference_info,
    all_inferences,
    suggest_inference,
)
from .workflow import (
    WorkflowState,
    WORKFLOW_TRANSITIONS,
    coerce_workflow_state,
    can_claim,
    is_workflow_transition_allowed,
    validate_workflow_transition,
)
from .epistemic import (
    EpistemicState,
    EpistemicStateInfo,
    EPISTEMIC_STATE_INFO,
    EPISTEMIC_TRANSITIONS,
    POSITIVE_TERMINAL_STATES,
    coerce_epistemic_state,
    get_epistemic_state_info,
    is_final,
    introduces_taint,
    is_positive_terminal,
    is_terminal,
    allowed_epistemic_transitions,
    validate_epistemic_transition,
)
from .taint import (
    TaintState,
    CONTAGIOUS_TAINT,
    coerce_taint_state,
    is_contagious,
)
from .target import (
    ChallengeTarget,
    CHALLENGE_TARGET_DESCRIPTIONS,
    coerce_challenge_target,
    describe_challenge_target,
    parse_challenge_targets,
)
from .severity import (
    ChallengeSeverity,
    ChallengeStatus,
    SeverityInfo,
    SEVERITY_INFO,
    DEFAULT_SEVERITY,
    coerce_severity,
    coerce_challenge_status,
    is_blocking_severity,
)
from .profile import SchemaProfile, SCHEMA_VERSION

__all__ = [
    # Helpers
    "coerce_enum",
    "enum_values",
    # Node types
    "NodeType",
    "NodeTypeInfo",
    "NODE_TYPE_INFO",
    "coerce_node_type",
    "get_node_type_info",
    "all_node_types",
    "opens_scope",
    "closes_scope",
    # Inference
    "InferenceType",
    "InferenceInfo",
    "INFERENCE_INFO",
    "coerce_inference",
    "get_inference_info",
    "all_inferences",
    "suggest_inference",
    # Workflow
    "WorkflowState",
    "WORKFLOW_TRANSITIONS",
    "coerce_workflow_state",
    "can_claim",
    "is_workflow_transition_allowed",
    "validate_workflow_transition",
    # Epistemic
    "EpistemicState",
    "EpistemicStateInfo",
    "EPISTEMIC_STATE_INFO",
    "EPISTEMIC_TRANSITIONS",
    "POSITIVE_TERMINAL_STATES",
    "coerce_epistemic_state",
    "get_epistemic_state_info",
    "is_final",
    "introduces_taint",
    "is_positive_terminal",
    "is_terminal",
    "allowed_epistemic_transitions",
    "validate_epistemic_transition",
    # Taint
    "TaintState",
    "CONTAGIOUS_TAINT",
    "coerce_taint_state",
    "is_contagious",
    # Challenges
    "ChallengeTarget",
    "CHALLENGE_TARGET_DESCRIPTIONS",
    "coerce_challenge_target",
    "describe_challenge_target",
    "parse_challenge_targets",
    "ChallengeSeverity",
    "ChallengeStatus",
    "SeverityInfo",
    "SEVERITY_INFO",
    "DEFAULT_SEVERITY",
    "coerce_severity",
    "coerce_challenge_status",
    "is_blocking_severity",
    # Profile
    "SchemaProfile",
    "SCHEMA_VERSION",
]
