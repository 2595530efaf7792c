"""
Configuration for the proof-state engine.

Centralized settings for:
- Claim timeouts reported to supervisors
- Tree shape limits (depth, children per node)
- Challenge defaults and per-node limits
- The schema profile (allow-lists for node types, rules and states)
- Ledger location and write locking

Settings load from environment variables (PROOFSTATE_*) or a YAML file.
"""

import os
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

import yaml

from .errors import InvalidInputError
from .schema.profile import SchemaProfile
from .schema.severity import ChallengeSeverity, coerce_severity

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """
    Configuration for the proof-state engine.

    Attributes:
        lock_timeout_seconds: Age after which a claim is reported stale
        max_depth: Maximum NodeID depth accepted by refine
        max_children: Maximum direct children per node
        warn_depth: Depth at which refine logs a warning

        default_severity: Severity used when a challenge names none
        max_challenges_per_node: Maximum open challenges on one node

        ledger_enabled: Whether the service persists events
        ledger_base_dir: Base directory holding one folder per proof
        ledger_lock_timeout_seconds: How long to wait for the ledger lock file
        ledger_lock_poll_seconds: Poll interval while waiting for the lock

        strict_context: Reject nodes whose context or scope refs do not resolve

        schema_profile: Allow-lists narrowing the built-in schema
    """

    # Claims
    lock_timeout_seconds: float = 300.0  # 5 minutes

    # Tree shape
    max_depth: int = 20
    max_children: int = 10
    warn_depth: int = 3

    # Challenges
    default_severity: ChallengeSeverity = ChallengeSeverity.MAJOR
    max_challenges_per_node: int = 20

    # Ledger
    ledger_enabled: bool = True
    ledger_base_dir: str = "proofs"
    ledger_lock_timeout_seconds: float = 5.0
    ledger_lock_poll_seconds: float = 0.01

    # Context references
    strict_context: bool = False  # False: unresolved refs are only logged

    # Schema
    schema_profile: SchemaProfile = field(default_factory=SchemaProfile)

    def __post_init__(self):
        self.default_severity = coerce_severity(self.default_severity)
        if isinstance(self.schema_profile, dict):
            self.schema_profile = SchemaProfile.from_dict(self.schema_profile)

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            InvalidInputError: a setting is out of range
        """
        if self.lock_timeout_seconds <= 0:
            raise InvalidInputError("lock_timeout_seconds must be positive")
        if self.max_depth < 1:
            raise InvalidInputError("max_depth must be at least 1")
        if self.max_children < 1:
            raise InvalidInputError("max_children must be at least 1")
        if self.warn_depth < 1 or self.warn_depth > self.max_depth:
            raise InvalidInputError("warn_depth must be between 1 and max_depth")
        if self.max_challenges_per_node < 1:
            raise InvalidInputError("max_challenges_per_node must be at least 1")
        if self.ledger_lock_timeout_seconds <= 0:
            raise InvalidInputError("ledger_lock_timeout_seconds must be positive")
        if self.ledger_lock_poll_seconds <= 0:
            raise InvalidInputError("ledger_lock_poll_seconds must be positive")
        if not self.ledger_base_dir:
            raise InvalidInputError("ledger_base_dir must not be empty")
        if not isinstance(self.schema_profile, SchemaProfile):
            raise InvalidInputError("schema_profile must be a mapping")
        self.schema_profile.validate()

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            PROOFSTATE_LOCK_TIMEOUT: seconds (default: 300)
            PROOFSTATE_MAX_DEPTH: int (default: 20)
            PROOFSTATE_MAX_CHILDREN: int (default: 10)
            PROOFSTATE_WARN_DEPTH: int (default: 3)
            PROOFSTATE_DEFAULT_SEVERITY: critical | major | minor | note (default: major)
            PROOFSTATE_MAX_CHALLENGES: int (default: 20)
            PROOFSTATE_LEDGER_ENABLED: true | false (default: true)
            PROOFSTATE_LEDGER_DIR: path (default: proofs)
            PROOFSTATE_LEDGER_LOCK_TIMEOUT: seconds (default: 5.0)
            PROOFSTATE_LEDGER_LOCK_POLL: seconds (default: 0.01)
            PROOFSTATE_STRICT_CONTEXT: true | false (default: false)
            PROOFSTATE_SCHEMA_PROFILE: path to a profile YAML (default: built-in schema)
        """
        def get_bool(key: str, default: bool) -> bool:
            val = os.environ.get(key, "").lower()
            if val in ("true", "1", "yes"):
                return True
            elif val in ("false", "0", "no"):
                return False
            return default

        def get_float(key: str, default: float) -> float:
            try:
                return float(os.environ.get(key, default))
            except (ValueError, TypeError):
                logger.warning(f"Invalid {key}, defaulting to {default}")
                return default

        def get_int(key: str, default: int) -> int:
            try:
                return int(os.environ.get(key, default))
            except (ValueError, TypeError):
                logger.warning(f"Invalid {key}, defaulting to {default}")
                return default

        severity_str = os.environ.get("PROOFSTATE_DEFAULT_SEVERITY", "major").lower()
        try:
            severity = ChallengeSeverity(severity_str)
        except ValueError:
            logger.warning(f"Invalid PROOFSTATE_DEFAULT_SEVERITY '{severity_str}', defaulting to 'major'")
            severity = ChallengeSeverity.MAJOR

        profile_path = os.environ.get("PROOFSTATE_SCHEMA_PROFILE", "")
        profile = SchemaProfile.from_yaml(profile_path) if profile_path else SchemaProfile()

        return cls(
            lock_timeout_seconds=get_float("PROOFSTATE_LOCK_TIMEOUT", 300.0),
            max_depth=get_int("PROOFSTATE_MAX_DEPTH", 20),
            max_children=get_int("PROOFSTATE_MAX_CHILDREN", 10),
            warn_depth=get_int("PROOFSTATE_WARN_DEPTH", 3),
            default_severity=severity,
            max_challenges_per_node=get_int("PROOFSTATE_MAX_CHALLENGES", 20),
            ledger_enabled=get_bool("PROOFSTATE_LEDGER_ENABLED", True),
            ledger_base_dir=os.environ.get("PROOFSTATE_LEDGER_DIR", "proofs"),
            ledger_lock_timeout_seconds=get_float("PROOFSTATE_LEDGER_LOCK_TIMEOUT", 5.0),
            ledger_lock_poll_seconds=get_float("PROOFSTATE_LEDGER_LOCK_POLL", 0.01),
            strict_context=get_bool("PROOFSTATE_STRICT_CONTEXT", False),
            schema_profile=profile,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"[CONFIG] Ignoring unknown config keys: {sorted(unknown)}")
        config = cls(**{k: v for k, v in data.items() if k in known})
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "EngineConfig":
        """Load configuration from YAML file."""
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "lock_timeout_seconds": self.lock_timeout_seconds,
            "max_depth": self.max_depth,
            "max_children": self.max_children,
            "warn_depth": self.warn_depth,
            "default_severity": self.default_severity.value,
            "max_challenges_per_node": self.max_challenges_per_node,
            "ledger_enabled": self.ledger_enabled,
            "ledger_base_dir": self.ledger_base_dir,
            "ledger_lock_timeout_seconds": self.ledger_lock_timeout_seconds,
            "ledger_lock_poll_seconds": self.ledger_lock_poll_seconds,
            "strict_context": self.strict_context,
            "schema_profile": self.schema_profile.to_dict(),
        }


# Global config instance
_config: Optional[EngineConfig] = None


def get_engine_config() -> EngineConfig:
    """Get global engine config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = EngineConfig.from_env()
        logger.debug(f"[CONFIG] Loaded config: {_config.to_dict()}")
    return _config


def reset_engine_config() -> None:
    """Reset global config (for testing)."""
    global _config
    _config = None
