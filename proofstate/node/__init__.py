"""
Proof entities: nodes, challenges and the auxiliary records nodes cite.
"""

from .node import Node, node_ids
from .challenge import Challenge
from .definition import Definition
from .assumption import Assumption
from .external import External
from .context import (
    ContextRef,
    DefinitionRef,
    AssumptionRef,
    ExternalRef,
    UnknownRef,
    parse_context_ref,
    parse_context_refs,
    is_resolvable,
)
from .hashing import content_hash, node_content_hash, generate_id

__all__ = [
    # Entities
    "Node",
    "node_ids",
    "Challenge",
    "Definition",
    "Assumption",
    "External",
    # Context references
    "ContextRef",
    "DefinitionRef",
    "AssumptionRef",
    "ExternalRef",
    "UnknownRef",
    "parse_context_ref",
    "parse_context_refs",
    "is_resolvable",
    # Hashing
    "content_hash",
    "node_content_hash",
    "generate_id",
]
