"""
External references (papers, theorems from libraries) cited by ext:<id> tags.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..errors import InvalidInputError
from ..types.timestamps import ensure_utc, from_iso, to_iso, utc_now
from .hashing import content_hash, generate_id


@dataclass
class External:
    id: str
    name: str
    source: str
    notes: str = ""
    content_hash: str = ""
    created: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        self.created = ensure_utc(self.created)
        if not self.content_hash:
            self.content_hash = content_hash(self.name, self.source)

    @classmethod
    def create(
        cls,
        name: str,
        source: str,
        notes: str = "",
        external_id: Optional[str] = None,
    ) -> "External":
        """
        Create an external reference with a generated ID.

        Raises:
            InvalidInputError: name or source is empty
        """
        if not name or not name.strip():
            raise InvalidInputError("external name must not be empty")
        if not source or not source.strip():
            raise InvalidInputError("external source must not be empty", name=name)
        return cls(id=external_id or generate_id(), name=name.strip(), source=source, notes=notes)

    def verify_content_hash(self) -> bool:
        return self.content_hash == content_hash(self.name, self.source)

    def snapshot(self) -> "External":
        return dataclasses.replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "source": self.source,
            "notes": self.notes,
            "content_hash": self.content_hash,
            "created": to_iso(self.created),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "External":
        return cls(
            id=data["id"],
            name=data["name"],
            source=data["source"],
            notes=data.get("notes", ""),
            content_hash=data.get("content_hash", ""),
            created=from_iso(data.get("created")) or utc_now(),
        )
