from enum import Enum
from typing import Type, TypeVar

from .errors import ValidationError

E = TypeVar("E", bound=Enum)


def validate_enum(value: str | Enum, enum_cls: Type[E], *, field: str) -> E:
    """Accept a member, its value or its name, in any case."""
    if isinstance(value, enum_cls):
        return value

    if isinstance(value, str):
        key = value.strip()
        by_value = {str(member.value).lower(): member for member in enum_cls}
        member = by_value.get(key.lower()) or enum_cls.__members__.get(key.upper())
        if member is not None:
            return member

    allowed = ", ".join(str(e.value) for e in enum_cls)
    raise ValidationError(f"Invalid {field}: {value!r}. Allowed values: {allowed}")
