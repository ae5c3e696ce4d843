"""
Base Schema Classes

This module provides base classes for bridge records and requests with
common serialization and deserialization methods to avoid code duplication.

Wire dictionaries use camelCase keys (as produced by the desktop host and
the in-process engine); Python attributes are snake_case. Subclasses that
need renaming declare it in `_WIRE_NAMES`.
"""

import json
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Dict, TypeVar

T = TypeVar("T", bound="BaseRecord")


class BaseRecord:
    """
    Base class for records returned by a backend.

    Provides common conversion between dataclass instances and their wire
    dictionaries.
    """

    # attribute name -> wire key, for the attributes that differ
    _WIRE_NAMES: ClassVar[Dict[str, str]] = {}

    @classmethod
    def from_dict(cls: type[T], data: Dict[str, Any]) -> T:
        """
        Create instance from dictionary.

        Accepts both the bare record and the `{"data": {...}}` form used in
        bridge frames.

        Args:
            data: Dictionary containing record data.

        Returns:
            Instance of the record class.
        """
        record_data = data.get("data", data)
        return cls._from_data(record_data)

    @classmethod
    def from_json(cls: type[T], json_str: str) -> T:
        """
        Create instance from JSON string.

        Args:
            json_str: JSON string containing record data.

        Returns:
            Instance of the record class.
        """
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def coerce(cls: type[T], value: Any) -> T:
        """Return `value` unchanged if already an instance, else decode it."""
        if isinstance(value, cls):
            return value
        return cls.from_dict(value)

    @classmethod
    def _from_data(cls: type[T], data: Dict[str, Any]) -> T:
        """
        Create instance from a record dictionary.

        Looks up each field under its wire name first, then its attribute
        name. Missing fields fall back to the dataclass default.

        Args:
            data: Dictionary containing record data.

        Returns:
            Instance of the record class.
        """
        kwargs = {}
        for field in fields(cls):
            wire_name = cls._WIRE_NAMES.get(field.name, field.name)
            if wire_name in data:
                kwargs[field.name] = data[wire_name]
            elif field.name in data:
                kwargs[field.name] = data[field.name]
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the wire dictionary.

        Returns:
            Dictionary keyed by wire names.
        """
        return {
            self._WIRE_NAMES.get(field.name, field.name): _plain(
                getattr(self, field.name)
            )
            for field in fields(self)
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


class BaseRequest:
    """
    Base class for tagged request schemas.

    Subclasses define `_tag_key` (the discriminator key) and `_tag` (its
    value); the remaining dataclass fields are serialized next to it.
    """

    _tag_key: ClassVar[str] = "type"
    _WIRE_NAMES: ClassVar[Dict[str, str]] = {}

    @property
    def _tag(self) -> str:
        """
        Tag identifying the request variant.

        Should be overridden by subclasses to provide the specific tag.
        """
        raise NotImplementedError("Subclasses must define _tag")

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary with the tag key and the request fields.
        """
        result = {self._tag_key: self._tag}
        for field in fields(self):
            wire_name = self._WIRE_NAMES.get(field.name, field.name)
            result[wire_name] = getattr(self, field.name)
        return result

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


def _plain(value: Any) -> Any:
    """Reduce enums and nested records to JSON-friendly values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseRecord):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


@dataclass
class Event:
    """
    Canonical envelope delivered to event subscribers.

    Attributes:
        payload: Event data as emitted by the backend
    """

    payload: Any
