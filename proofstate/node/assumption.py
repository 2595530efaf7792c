"""
Global assumptions cited by assume:<id> context tags.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..errors import InvalidInputError
from ..types.timestamps import ensure_utc, from_iso, to_iso, utc_now
from .hashing import content_hash, generate_id


@dataclass
class Assumption:
    """
    A hypothesis the whole proof may rely on.

    Attributes:
        id: Unique ID
        statement: The assumed proposition
        justification: Optional reason the assumption is acceptable
        content_hash: SHA-256 over (statement, justification)
        created: Creation time (UTC)
    """
    id: str
    statement: str
    justification: str = ""
    content_hash: str = ""
    created: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        self.created = ensure_utc(self.created)
        if not self.content_hash:
            self.content_hash = content_hash(self.statement, self.justification)

    @classmethod
    def create(
        cls,
        statement: str,
        justification: str = "",
        assumption_id: Optional[str] = None,
    ) -> "Assumption":
        if not statement or not statement.strip():
            raise InvalidInputError("assumption statement must not be empty")
        return cls(
            id=assumption_id or generate_id(),
            statement=statement,
            justification=justification,
        )

    def verify_content_hash(self) -> bool:
        return self.content_hash == content_hash(self.statement, self.justification)

    def snapshot(self) -> "Assumption":
        return dataclasses.replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "statement": self.statement,
            "justification": self.justification,
            "content_hash": self.content_hash,
            "created": to_iso(self.created),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assumption":
        return cls(
            id=data["id"],
            statement=data["statement"],
            justification=data.get("justification", ""),
            content_hash=data.get("content_hash", ""),
            created=from_iso(data.get("created")) or utc_now(),
        )
