"""
Content hashing and ID generation for proof entities.

Hashes are SHA-256 hex digests over NUL-separated fields, so that
("ab", "c") and ("a", "bc") never collide.
"""

import hashlib
import secrets
from typing import Any

# Random bytes per generated entity ID (rendered as twice as many hex chars)
ID_BYTES = 8


def _field(value: Any) -> str:
    return getattr(value, "value", value) if value is not None else ""


def content_hash(*fields: Any) -> str:
    """SHA-256 hex digest over the NUL-joined string fields."""
    canonical = "\x00".join(str(_field(f)) for f in fields)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def node_content_hash(node_type: Any, statement: str, inference: Any) -> str:
    """Integrity digest of a node's (type, statement, inference)."""
    return content_hash(node_type, statement, inference)


def generate_id(prefix: str = "") -> str:
    """Random hex identifier, optionally prefixed (e.g. "ch-3fa9...")."""
    token = secrets.token_hex(ID_BYTES)
    return f"{prefix}-{token}" if prefix else token
