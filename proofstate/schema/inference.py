"""
Inference rule registry.

Each inference type carries a human-readable name and its logical form.
"""

import difflib
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping, Optional

from .base import coerce_enum


class InferenceType(str, Enum):
    """Inference rules a proof step may cite."""
    MODUS_PONENS = "modus_ponens"
    MODUS_TOLLENS = "modus_tollens"
    UNIVERSAL_INSTANTIATION = "universal_instantiation"
    EXISTENTIAL_INSTANTIATION = "existential_instantiation"
    UNIVERSAL_GENERALIZATION = "universal_generalization"
    EXISTENTIAL_GENERALIZATION = "existential_generalization"
    BY_DEFINITION = "by_definition"
    ASSUMPTION = "assumption"
    LOCAL_ASSUME = "local_assume"
    LOCAL_DISCHARGE = "local_discharge"
    CONTRADICTION = "contradiction"


@dataclass(frozen=True)
class InferenceInfo:
    id: InferenceType
    name: str
    form: str


INFERENCE_INFO: Mapping[InferenceType, InferenceInfo] = MappingProxyType({
    InferenceType.MODUS_PONENS: InferenceInfo(
        InferenceType.MODUS_PONENS, "Modus Ponens", "P, P → Q ⊢ Q"),
    InferenceType.MODUS_TOLLENS: InferenceInfo(
        InferenceType.MODUS_TOLLENS, "Modus Tollens", "¬Q, P → Q ⊢ ¬P"),
    InferenceType.UNIVERSAL_INSTANTIATION: InferenceInfo(
        InferenceType.UNIVERSAL_INSTANTIATION, "Universal Instantiation", "∀x.P(x) ⊢ P(t)"),
    InferenceType.EXISTENTIAL_INSTANTIATION: InferenceInfo(
        InferenceType.EXISTENTIAL_INSTANTIATION, "Existential Instantiation", "∃x.P(x) ⊢ P(c) for fresh c"),
    InferenceType.UNIVERSAL_GENERALIZATION: InferenceInfo(
        InferenceType.UNIVERSAL_GENERALIZATION, "Universal Generalization", "P(x) for arbitrary x ⊢ ∀x.P(x)"),
    InferenceType.EXISTENTIAL_GENERALIZATION: InferenceInfo(
        InferenceType.EXISTENTIAL_GENERALIZATION, "Existential Generalization", "P(c) ⊢ ∃x.P(x)"),
    InferenceType.BY_DEFINITION: InferenceInfo(
        InferenceType.BY_DEFINITION, "By Definition", "unfold definition"),
    InferenceType.ASSUMPTION: InferenceInfo(
        InferenceType.ASSUMPTION, "Assumption", "global hypothesis"),
    InferenceType.LOCAL_ASSUME: InferenceInfo(
        InferenceType.LOCAL_ASSUME, "Local Assume", "introduce local hypothesis"),
    InferenceType.LOCAL_DISCHARGE: InferenceInfo(
        InferenceType.LOCAL_DISCHARGE, "Local Discharge", "conclude from local hypothesis"),
    InferenceType.CONTRADICTION: InferenceInfo(
        InferenceType.CONTRADICTION, "Contradiction", "P ∧ ¬P ⊢ ⊥"),
})

# Minimum similarity ratio for suggest_inference
SUGGESTION_CUTOFF = 0.6


def coerce_inference(value: Any) -> InferenceType:
    return coerce_enum(InferenceType, value, "inference type")


def get_inference_info(inference: Any) -> InferenceInfo:
    return INFERENCE_INFO[coerce_inference(inference)]


def all_inferences() -> List[InferenceInfo]:
    return [INFERENCE_INFO[i] for i in InferenceType]


def suggest_inference(text: str) -> Optional[InferenceType]:
    """
    Closest inference type to a possibly misspelled input.

    Matching is case-insensitive; spaces and dashes count as underscores.
    Returns None when nothing is reasonably close.
    """
    if not text or not text.strip():
        return None
    normalized = text.strip().lower().replace(" ", "_").replace("-", "_")
    matches = difflib.get_close_matches(
        normalized,
        [i.value for i in InferenceType],
        n=1,
        cutoff=SUGGESTION_CUTOFF,
    )
    if not matches:
        return None
    return InferenceType(matches[0])
