"""
Context references.

Nodes cite auxiliary entities through string tags in their context and scope
lists:

    def:<name>     a Definition, looked up by name (or ID)
    assume:<id>    an Assumption
    ext:<id>       an External reference

Tags are parsed once into ContextRef values. Any other prefix becomes an
UnknownRef, which is carried along but never resolved and never an error.
"""

from dataclasses import dataclass
from typing import Iterable, Tuple, Union

DEFINITION_PREFIX = "def:"
ASSUMPTION_PREFIX = "assume:"
EXTERNAL_PREFIX = "ext:"


@dataclass(frozen=True)
class DefinitionRef:
    name: str

    def to_tag(self) -> str:
        return f"{DEFINITION_PREFIX}{self.name}"


@dataclass(frozen=True)
class AssumptionRef:
    id: str

    def to_tag(self) -> str:
        return f"{ASSUMPTION_PREFIX}{self.id}"


@dataclass(frozen=True)
class ExternalRef:
    id: str

    def to_tag(self) -> str:
        return f"{EXTERNAL_PREFIX}{self.id}"


@dataclass(frozen=True)
class UnknownRef:
    raw: str

    def to_tag(self) -> str:
        return self.raw


ContextRef = Union[DefinitionRef, AssumptionRef, ExternalRef, UnknownRef]


def parse_context_ref(tag: str) -> ContextRef:
    """
    Parse one context/scope tag.

    A known prefix with an empty remainder is treated as unknown, since it
    cannot name anything.
    """
    if tag.startswith(DEFINITION_PREFIX) and len(tag) > len(DEFINITION_PREFIX):
        return DefinitionRef(tag[len(DEFINITION_PREFIX):])
    if tag.startswith(ASSUMPTION_PREFIX) and len(tag) > len(ASSUMPTION_PREFIX):
        return AssumptionRef(tag[len(ASSUMPTION_PREFIX):])
    if tag.startswith(EXTERNAL_PREFIX) and len(tag) > len(EXTERNAL_PREFIX):
        return ExternalRef(tag[len(EXTERNAL_PREFIX):])
    return UnknownRef(tag)


def parse_context_refs(tags: Iterable[str]) -> Tuple[ContextRef, ...]:
    return tuple(parse_context_ref(t) for t in tags)


def is_resolvable(ref: ContextRef) -> bool:
    return not isinstance(ref, UnknownRef)
