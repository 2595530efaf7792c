"""
Taint derivation and propagation.
"""

from .compute import compute_taint
from .propagate import TaintChange, TaintPropagator, ensure_resolved

__all__ = [
    "compute_taint",
    "TaintChange",
    "TaintPropagator",
    "ensure_resolved",
]
