"""
Pytest fixtures and configuration for the proofstate test suite.
"""

import pytest
from pathlib import Path

# Ensure proofstate package is importable
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from proofstate.config import EngineConfig, reset_engine_config
from proofstate.node.node import Node
from proofstate.schema.epistemic import EpistemicState
from proofstate.state.store import ProofState


@pytest.fixture(autouse=True)
def _reset_config():
    """Keep the process-wide config from leaking between tests."""
    reset_engine_config()
    yield
    reset_engine_config()


@pytest.fixture
def config(tmp_path) -> EngineConfig:
    """Engine config writing ledgers under tmp_path."""
    return EngineConfig(
        ledger_base_dir=str(tmp_path / "proofs"),
        ledger_lock_timeout_seconds=2.0,
    )


@pytest.fixture
def state(config) -> ProofState:
    return ProofState(config)


@pytest.fixture
def make_node():
    """Factory for claim nodes with sensible defaults."""
    def _make(node_id, statement=None, **kwargs):
        kwargs.setdefault("node_type", "claim")
        kwargs.setdefault("inference", "modus_ponens")
        return Node.create(
            node_id,
            statement=statement or f"statement {node_id}",
            **kwargs,
        )
    return _make


@pytest.fixture
def tree(state, make_node) -> ProofState:
    """
    Small tree:

        1
        ├── 1.1
        ├── 1.2  (depends on 1.1)
        └── 1.3  (depends on 1.2)
    """
    state.add_node(make_node("1"))
    state.add_node(make_node("1.1"))
    state.add_node(make_node("1.2", dependencies=["1.1"]))
    state.add_node(make_node("1.3", dependencies=["1.2"]))
    return state


def force_epistemic(state: ProofState, node_id: str, target: EpistemicState) -> None:
    """Drive a pending node to target through legal transitions."""
    if target == EpistemicState.NEEDS_REFINEMENT:
        state.apply_epistemic_transition(node_id, EpistemicState.VALIDATED)
    state.apply_epistemic_transition(node_id, target)
