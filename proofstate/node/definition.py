"""
Definitions cited by def:<name> context tags.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..errors import InvalidInputError
from ..types.timestamps import ensure_utc, from_iso, to_iso, utc_now
from .hashing import content_hash, generate_id


@dataclass
class Definition:
    id: str
    name: str
    content: str
    content_hash: str = ""
    created: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        self.created = ensure_utc(self.created)
        if not self.content_hash:
            self.content_hash = content_hash(self.name, self.content)

    @classmethod
    def create(cls, name: str, content: str, definition_id: Optional[str] = None) -> "Definition":
        """
        Create a definition with a generated ID.

        Raises:
            InvalidInputError: name or content is empty
        """
        if not name or not name.strip():
            raise InvalidInputError("definition name must not be empty")
        if not content or not content.strip():
            raise InvalidInputError("definition content must not be empty", name=name)
        return cls(id=definition_id or generate_id(), name=name.strip(), content=content)

    def verify_content_hash(self) -> bool:
        return self.content_hash == content_hash(self.name, self.content)

    def snapshot(self) -> "Definition":
        return dataclasses.replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "content": self.content,
            "content_hash": self.content_hash,
            "created": to_iso(self.created),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Definition":
        return cls(
            id=data["id"],
            name=data["name"],
            content=data["content"],
            content_hash=data.get("content_hash", ""),
            created=from_iso(data.get("created")) or utc_now(),
        )
