"""
Schema profile: the allow-lists a proof accepts.

A profile narrows the built-in registries (for example, a proof that forbids
admitted steps can drop "admitted" from its epistemic states). Profiles can
only select from the built-in members; they never add new ones.

Example YAML:

    version: "1.0"
    node_types: [claim, case, qed]
    inference_types: [modus_ponens, by_definition, assumption]
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Type

import yaml

from ..errors import InvalidInputError, InvalidStateError
from .base import coerce_enum, enum_values
from .epistemic import EpistemicState
from .inference import InferenceType
from .node_type import NodeType
from .severity import ChallengeSeverity
from .target import ChallengeTarget
from .workflow import WorkflowState

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"

# Field name -> enum the field draws from
_PROFILE_FIELDS: Dict[str, Type[Enum]] = {
    "node_types": NodeType,
    "inference_types": InferenceType,
    "workflow_states": WorkflowState,
    "epistemic_states": EpistemicState,
    "challenge_targets": ChallengeTarget,
    "challenge_severities": ChallengeSeverity,
}

# Field name -> label used in rejection messages
_FIELD_KINDS: Dict[str, str] = {
    "node_types": "node type",
    "inference_types": "inference type",
    "workflow_states": "workflow state",
    "epistemic_states": "epistemic state",
    "challenge_targets": "challenge target",
    "challenge_severities": "challenge severity",
}


@dataclass
class SchemaProfile:
    """
    Allow-lists for every schema enumeration.

    Attributes:
        version: Profile format version
        node_types: Allowed node types
        inference_types: Allowed inference rules
        workflow_states: Allowed workflow states
        epistemic_states: Allowed epistemic states
        challenge_targets: Allowed challenge targets
        challenge_severities: Allowed challenge severities
    """
    version: str = SCHEMA_VERSION
    node_types: List[str] = field(default_factory=lambda: enum_values(NodeType))
    inference_types: List[str] = field(default_factory=lambda: enum_values(InferenceType))
    workflow_states: List[str] = field(default_factory=lambda: enum_values(WorkflowState))
    epistemic_states: List[str] = field(default_factory=lambda: enum_values(EpistemicState))
    challenge_targets: List[str] = field(default_factory=lambda: enum_values(ChallengeTarget))
    challenge_severities: List[str] = field(default_factory=lambda: enum_values(ChallengeSeverity))

    @classmethod
    def default(cls) -> "SchemaProfile":
        return cls()

    def validate(self) -> None:
        """
        Check the profile is usable.

        Raises:
            InvalidInputError: missing version or an empty allow-list
            InvalidStateError: an entry is not a built-in member
        """
        if not self.version:
            raise InvalidInputError("schema profile version is empty")
        for name, enum_cls in _PROFILE_FIELDS.items():
            values = getattr(self, name)
            if not values:
                raise InvalidInputError(f"schema profile field {name} is empty", field=name)
            for value in values:
                coerce_enum(enum_cls, value, f"entry in {name}")

    def _allows(self, name: str, value: Any) -> bool:
        return getattr(value, "value", value) in getattr(self, name)

    def has_node_type(self, value: Any) -> bool:
        return self._allows("node_types", value)

    def has_inference_type(self, value: Any) -> bool:
        return self._allows("inference_types", value)

    def has_workflow_state(self, value: Any) -> bool:
        return self._allows("workflow_states", value)

    def has_epistemic_state(self, value: Any) -> bool:
        return self._allows("epistemic_states", value)

    def has_challenge_target(self, value: Any) -> bool:
        return self._allows("challenge_targets", value)

    def has_challenge_severity(self, value: Any) -> bool:
        return self._allows("challenge_severities", value)

    def require(self, name: str, value: Any) -> None:
        """
        Reject a value missing from the named allow-list.

        Raises:
            InvalidStateError: value is a built-in member this profile excludes
        """
        if not self._allows(name, value):
            raise InvalidStateError(
                _FIELD_KINDS[name], getattr(value, "value", value), getattr(self, name)
            )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"version": self.version}
        for name in _PROFILE_FIELDS:
            data[name] = list(getattr(self, name))
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaProfile":
        """Build and validate a profile; missing lists fall back to all members."""
        if not isinstance(data, dict):
            raise InvalidInputError("schema profile must be a mapping")
        unknown = set(data) - set(_PROFILE_FIELDS) - {"version"}
        if unknown:
            logger.warning(f"[SCHEMA] Ignoring unknown profile keys: {sorted(unknown)}")
        kwargs: Dict[str, Any] = {}
        if "version" in data:
            kwargs["version"] = str(data["version"])
        for name in _PROFILE_FIELDS:
            if name in data:
                values = data[name]
                if isinstance(values, str) or not isinstance(values, list):
                    raise InvalidInputError(f"schema profile field {name} must be a list", field=name)
                kwargs[name] = [str(v) for v in values]
        profile = cls(**kwargs)
        profile.validate()
        return profile

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "SchemaProfile":
        """Load a profile from a YAML file."""
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})
