"""
Dict conversion for the dataclasses that travel through the event log and
command ingress.
"""

from dataclasses import fields
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Union, get_args, get_origin, get_type_hints

from dateutil.parser import isoparse

from .member import Member
from .role import Role


def _encode(value, convert_datetime_to_iso_string: bool):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Member):
        return value.as_dict(convert_datetime_to_iso_string)
    if isinstance(value, Role):
        return value.as_dict()
    if isinstance(value, datetime):
        return value.isoformat() if convert_datetime_to_iso_string else value
    if isinstance(value, (set, frozenset)):
        return sorted(_encode(v, convert_datetime_to_iso_string) for v in value)
    if isinstance(value, (list, tuple)):
        return [_encode(v, convert_datetime_to_iso_string) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v, convert_datetime_to_iso_string) for k, v in value.items()}
    return value


def _decode(value, expected_type):
    """
    Convert a plain value back into ``expected_type``.

    Raises:
        ValueError: If an enum value or a date string is invalid.
    """
    if value is None or expected_type is None:
        return value

    origin = get_origin(expected_type)
    if origin is Union:
        args = [arg for arg in get_args(expected_type) if arg is not type(None)]
        return _decode(value, args[0]) if len(args) == 1 else value

    if origin in (frozenset, set, tuple, list):
        args = get_args(expected_type)
        item_type = args[0] if args else None
        items = [_decode(v, item_type) for v in value]
        return origin(items)

    if isinstance(expected_type, type):
        if issubclass(expected_type, Enum):
            return expected_type(value)
        if expected_type is datetime and isinstance(value, str):
            return isoparse(value)
        if expected_type in (Role, Member) and isinstance(value, dict):
            return expected_type.from_dict(value)
    return value


class PayloadModel:
    """
    Mixin for dataclasses that are serialized with a type tag.

    ``as_dict`` writes the class name under ``tag_field``; ``from_dict`` converts
    each known key according to the field's type hint and ignores the rest.
    """

    tag_field: ClassVar[str] = 'type'

    @classmethod
    def fields(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def as_dict(self, convert_datetime_to_iso_string: bool = False) -> Dict[str, Any]:
        result = {self.tag_field: type(self).__name__}
        for name in self.fields():
            result[name] = _encode(getattr(self, name), convert_datetime_to_iso_string)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        hints = get_type_hints(cls)
        clean_data = {
            name: _decode(data[name], hints.get(name))
            for name in cls.fields() if name in data
        }
        return cls(**clean_data)
