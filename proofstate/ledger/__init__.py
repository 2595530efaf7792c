"""
Event ledger for proofs.

Components:
- EventType / LedgerEvent: what is recorded, with factory helpers
- LedgerRecord: pydantic schema of one persisted JSONL line
- ProofLedger: append-only file with lock file and sequence CAS
- apply_event / replay / replay_ledger: rebuild state from events
"""

from .events import (
    EventType,
    LedgerEvent,
    EPISTEMIC_EVENTS,
    proof_initialized,
    node_created,
    nodes_claimed,
    claim_refreshed,
    nodes_released,
    epistemic_event,
    workflow_changed,
    taint_recomputed,
    challenge_raised,
    challenge_resolved,
    challenge_withdrawn,
    def_added,
    assumption_added,
    external_added,
    event_types,
)
from .schemas import LedgerRecord
from .ledger import ProofLedger, LEDGER_FILENAME, LOCK_FILENAME
from .replay import apply_event, replay, replay_ledger

__all__ = [
    # Events
    "EventType",
    "LedgerEvent",
    "EPISTEMIC_EVENTS",
    "proof_initialized",
    "node_created",
    "nodes_claimed",
    "claim_refreshed",
    "nodes_released",
    "epistemic_event",
    "workflow_changed",
    "taint_recomputed",
    "challenge_raised",
    "challenge_resolved",
    "challenge_withdrawn",
    "def_added",
    "assumption_added",
    "external_added",
    "event_types",
    # Storage
    "LedgerRecord",
    "ProofLedger",
    "LEDGER_FILENAME",
    "LOCK_FILENAME",
    # Replay
    "apply_event",
    "replay",
    "replay_ledger",
]
