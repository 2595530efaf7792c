"""
Pydantic schema for persisted ledger records.

Each line of a ledger file is one LedgerRecord serialized as JSON.
"""

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field

from .events import EventType, LedgerEvent


class LedgerRecord(BaseModel):
    """
    One persisted ledger line.

    seq starts at 1 and increases by exactly one per record.
    """
    seq: int = Field(ge=1)
    event_type: EventType
    timestamp: datetime
    payload: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_event(cls, event: LedgerEvent, seq: int) -> "LedgerRecord":
        return cls(
            seq=seq,
            event_type=event.event_type,
            timestamp=event.timestamp,
            payload=event.payload,
        )

    def to_event(self) -> LedgerEvent:
        return LedgerEvent(
            event_type=self.event_type,
            payload=dict(self.payload),
            timestamp=self.timestamp,
            seq=self.seq,
        )
