"""
Shared helpers for the closed schema enumerations.
"""

from enum import Enum
from typing import Any, List, Type, TypeVar

from ..errors import InvalidStateError

E = TypeVar("E", bound=Enum)


def enum_values(enum_cls: Type[Enum]) -> List[str]:
    return [member.value for member in enum_cls]


def coerce_enum(enum_cls: Type[E], value: Any, kind: str) -> E:
    """
    Convert a member or its string value to an enum member.

    Raises:
        InvalidStateError: value is not a recognised member
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value)
        except ValueError:
            pass
    raise InvalidStateError(kind, value, enum_values(enum_cls))
