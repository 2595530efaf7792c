"""
State store, dependency graph and assumption scopes.
"""

from .graph import DependencyGraph, DEPENDENCIES, VALIDATION_DEPS
from .scope import ScopeEntry, ScopeInfo, ScopeTracker
from .store import ProofState, ContextResolution

__all__ = [
    "ProofState",
    "ContextResolution",
    "DependencyGraph",
    "DEPENDENCIES",
    "VALIDATION_DEPS",
    "ScopeEntry",
    "ScopeInfo",
    "ScopeTracker",
]
