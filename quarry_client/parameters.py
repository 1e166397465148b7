#!/usr/bin/env python3
"""
Typed query parameters.

Each well-known search parameter is declared on Query as a descriptor that
encodes Python values into the query's ParameterStore and decodes them back.

Decoding is total: a stored value that cannot be interpreted reads as None
instead of raising, so values written by older clients or by raw set() calls
degrade to "unset". Setting None (or deleting the attribute) removes the key.
"""

import json
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Type

from quarry_common.constants import RADIUS_ALL_TOKEN
from quarry_common.exceptions import InvalidParameterError

from .geo import GeoRect, LatLng

# Sentinel radius meaning "do not stop at a specific radius"
RADIUS_ALL = 2 ** 31 - 1


# ============================================================================
# DECODING HELPERS
# ============================================================================

def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse a decimal integer, ignoring surrounding whitespace."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_boolean(value: Optional[str]) -> Optional[bool]:
    """Parse "true"/"false" in any case, or an integer (non-zero is true)."""
    if value is None:
        return None
    token = value.strip().lower()
    if token == "true":
        return True
    if token == "false":
        return False
    number = parse_int(value)
    if number is None:
        return None
    return number != 0


def build_json_array(values: Iterable[Any]) -> str:
    return json.dumps(list(values), separators=(",", ":"), ensure_ascii=False)


def parse_array(value: Optional[str]) -> Optional[List[str]]:
    """
    Parse a list of strings.

    JSON array notation is tried first; anything else is read as a legacy
    comma-separated list.
    """
    if value is None:
        return None
    try:
        decoded = json.loads(value)
    except ValueError:
        decoded = None
    if isinstance(decoded, list):
        return ["" if item is None else str(item) for item in decoded]
    return value.split(",")


def parse_json_array(value: Optional[str]) -> Optional[list]:
    """Parse a JSON array literal; anything else reads as None."""
    if value is None:
        return None
    try:
        decoded = json.loads(value)
    except ValueError:
        return None
    return decoded if isinstance(decoded, list) else None


def parse_coordinates(value: Optional[str]) -> Optional[List[float]]:
    """Split a comma-joined coordinate list into floats."""
    if value is None:
        return None
    try:
        return [float(field) for field in value.split(",")]
    except ValueError:
        return None


# ============================================================================
# DESCRIPTORS
# ============================================================================

class Parameter:
    """
    Typed view of one wire key in a Query's parameter store.

    Subclasses override encode() and decode(). The owning object must provide
    get(name) and set(name, value) over its store.
    """

    def __init__(self, key: str, legacy_keys: Sequence[str] = (), doc: Optional[str] = None):
        self.key = key
        self.legacy_keys: Tuple[str, ...] = tuple(legacy_keys)
        self.name: Optional[str] = None
        self.__doc__ = doc

    def __set_name__(self, owner, name: str) -> None:
        self.name = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return self.decode(self.raw_value(instance))

    def __set__(self, instance, value) -> None:
        instance.set(self.key, None if value is None else self.encode(value))

    def __delete__(self, instance) -> None:
        instance.set(self.key, None)

    def raw_value(self, instance) -> Optional[str]:
        """Stored string under the current key, else under the first set legacy key."""
        raw = instance.get(self.key)
        if raw is None:
            for legacy_key in self.legacy_keys:
                raw = instance.get(legacy_key)
                if raw is not None:
                    break
        return raw

    def encode(self, value: Any) -> str:
        return str(value)

    def decode(self, raw: Optional[str]) -> Any:
        return raw

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key!r})"


class StringParameter(Parameter):
    """Free-form string, stored verbatim."""


class BooleanParameter(Parameter):

    def encode(self, value: Any) -> str:
        return "true" if value else "false"

    def decode(self, raw: Optional[str]) -> Optional[bool]:
        return parse_boolean(raw)


class IntegerParameter(Parameter):

    def encode(self, value: Any) -> str:
        return str(int(value))

    def decode(self, raw: Optional[str]) -> Optional[int]:
        return parse_int(raw)


class RadiusParameter(IntegerParameter):
    """Integer radius in meters, or RADIUS_ALL for no limit."""

    def encode(self, value: Any) -> str:
        if value == RADIUS_ALL:
            return RADIUS_ALL_TOKEN
        return super().encode(value)

    def decode(self, raw: Optional[str]) -> Optional[int]:
        if raw is not None and raw == RADIUS_ALL_TOKEN:
            return RADIUS_ALL
        return super().decode(raw)


class StringListParameter(Parameter):
    """List of strings, written as a JSON array."""

    def encode(self, value: Any) -> str:
        if isinstance(value, str):
            value = [value]
        return build_json_array(str(item) for item in value)

    def decode(self, raw: Optional[str]) -> Optional[List[str]]:
        return parse_array(raw)


class JSONArrayParameter(Parameter):
    """JSON array fragment such as facet or numeric filters."""

    def encode(self, value: Any) -> str:
        # Raw JSON passes through untouched
        if isinstance(value, str):
            return value
        return build_json_array(value)

    def decode(self, raw: Optional[str]) -> Optional[list]:
        return parse_json_array(raw)


class EnumParameter(Parameter):
    """Enum whose member values are the wire tokens."""

    def __init__(self, key: str, enum_type: Type[Enum], **kwargs):
        super().__init__(key, **kwargs)
        self.enum_type = enum_type

    def encode(self, value: Any) -> str:
        return self.enum_type(value).value

    def decode(self, raw: Optional[str]) -> Optional[Enum]:
        if raw is None:
            return None
        try:
            return self.enum_type(raw)
        except ValueError:
            return None


class EnumSetParameter(EnumParameter):
    """Several enum members, written as comma-joined tokens."""

    def encode(self, value: Any) -> str:
        return ",".join(self.enum_type(item).value for item in value)

    def decode(self, raw: Optional[str]) -> Optional[List[Enum]]:
        if raw is None:
            return None
        members = []
        for token in raw.split(","):
            member = super().decode(token)
            if member is not None:
                members.append(member)
        return members


class LatLngParameter(Parameter):
    """A single point, written as "lat,lng"."""

    def encode(self, value: LatLng) -> str:
        return value.encode()

    def decode(self, raw: Optional[str]) -> Optional[LatLng]:
        coordinates = parse_coordinates(raw)
        if coordinates is None or len(coordinates) != 2:
            return None
        return LatLng(coordinates[0], coordinates[1])


class BoundingBoxParameter(Parameter):
    """One or more rectangles, four coordinates each, flattened."""

    def encode(self, value: Iterable[GeoRect]) -> str:
        return ",".join(box.encode() for box in value)

    def decode(self, raw: Optional[str]) -> Optional[List[GeoRect]]:
        coordinates = parse_coordinates(raw)
        if coordinates is None or len(coordinates) % 4 != 0:
            return None
        return [
            GeoRect(LatLng(coordinates[i], coordinates[i + 1]),
                    LatLng(coordinates[i + 2], coordinates[i + 3]))
            for i in range(0, len(coordinates), 4)
        ]


class PolygonParameter(Parameter):
    """Polygon of at least three points, coordinates flattened."""

    MIN_POINTS = 3

    def __set__(self, instance, value) -> None:
        if value is not None:
            value = list(value)
            if len(value) < self.MIN_POINTS:
                raise ValueError("A polygon must have at least three vertices")
        super().__set__(instance, value)

    def encode(self, value: Iterable[LatLng]) -> str:
        return ",".join(point.encode() for point in value)

    def decode(self, raw: Optional[str]) -> Optional[List[LatLng]]:
        coordinates = parse_coordinates(raw)
        if (coordinates is None or len(coordinates) % 2 != 0
                or len(coordinates) // 2 < self.MIN_POINTS):
            return None
        return [LatLng(coordinates[i], coordinates[i + 1])
                for i in range(0, len(coordinates), 2)]


class StopWordsParameter(Parameter):
    """
    Stop-word removal: a boolean for all languages, or a list of language codes.

    Language codes may be given as a comma separated string or a sequence.
    """

    def encode(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, str):
            return value
        if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
            return ",".join(value)
        raise InvalidParameterError(self.key, "should be a boolean, a string or a list of strings")

    def decode(self, raw: Optional[str]):
        if raw is None:
            return None
        languages = raw.split(",")
        if len(languages) == 1 and languages[0] in ("true", "false"):
            return parse_boolean(raw)
        return languages
