"""
Challenge lifecycle and severity-based blocking.
"""

from .lifecycle import ChallengeManager, CHALLENGE_ID_PREFIX
from ..schema.severity import is_blocking_severity

__all__ = [
    "ChallengeManager",
    "CHALLENGE_ID_PREFIX",
    "is_blocking_severity",
]
