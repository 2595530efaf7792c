"""
Node type registry.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping

from .base import coerce_enum


class NodeType(str, Enum):
    """Kinds of proof steps."""
    CLAIM = "claim"
    LOCAL_ASSUME = "local_assume"
    LOCAL_DISCHARGE = "local_discharge"
    CASE = "case"
    QED = "qed"


@dataclass(frozen=True)
class NodeTypeInfo:
    id: NodeType
    description: str
    opens_scope: bool = False
    closes_scope: bool = False


NODE_TYPE_INFO: Mapping[NodeType, NodeTypeInfo] = MappingProxyType({
    NodeType.CLAIM: NodeTypeInfo(
        NodeType.CLAIM,
        "Mathematical assertion to be justified",
    ),
    NodeType.LOCAL_ASSUME: NodeTypeInfo(
        NodeType.LOCAL_ASSUME,
        "Introduces a local hypothesis (opens a scope)",
        opens_scope=True,
    ),
    NodeType.LOCAL_DISCHARGE: NodeTypeInfo(
        NodeType.LOCAL_DISCHARGE,
        "Concludes from a local hypothesis (closes a scope)",
        closes_scope=True,
    ),
    NodeType.CASE: NodeTypeInfo(
        NodeType.CASE,
        "One branch of a case split",
    ),
    NodeType.QED: NodeTypeInfo(
        NodeType.QED,
        "Concludes the proof or subproof",
    ),
})


def coerce_node_type(value: Any) -> NodeType:
    return coerce_enum(NodeType, value, "node type")


def get_node_type_info(node_type: Any) -> NodeTypeInfo:
    return NODE_TYPE_INFO[coerce_node_type(node_type)]


def all_node_types() -> List[NodeTypeInfo]:
    return [NODE_TYPE_INFO[t] for t in NodeType]


def opens_scope(node_type: Any) -> bool:
    return get_node_type_info(node_type).opens_scope


def closes_scope(node_type: Any) -> bool:
    return get_node_type_info(node_type).closes_scope
