"""
Parameter Store - untyped, canonical representation of a query.

All query state lives here as strings keyed by wire name. Typed accessors
encode into and decode out of this store; raw access lets callers use server
parameters the client does not model yet.
"""

from collections.abc import MutableMapping
from typing import Any, Dict, Iterator, Optional


def to_wire_string(value: Any) -> str:
    """Convert a raw value to its stored string form."""
    # Python spells booleans "True"/"False"; the wire wants lowercase
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ParameterStore(MutableMapping):
    """
    Mapping of parameter name to string value, iterated in sorted key order.

    Setting a value to None removes the key; there is no stored "null".
    Not safe for concurrent mutation: a store has a single owner, and is
    copied rather than shared across threads.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._parameters: Dict[str, str] = {}
        if initial:
            for name, value in initial.items():
                self.set(name, value)

    # Low-level accessors

    def set(self, name: str, value: Any) -> "ParameterStore":
        """
        Set a parameter in an untyped fashion.

        Args:
            name: The parameter's wire name
            value: The value, or None to remove the parameter. Stored as a string.

        Returns:
            This store, for chaining
        """
        if value is None:
            self._parameters.pop(name, None)
        else:
            self._parameters[name] = to_wire_string(value)
        return self

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a parameter's raw string value, or default if it is unset."""
        return self._parameters.get(name, default)

    def copy(self) -> "ParameterStore":
        """Return an independent copy of this store."""
        clone = ParameterStore()
        clone._parameters = dict(self._parameters)
        return clone

    # Mapping protocol

    def __getitem__(self, name: str) -> str:
        return self._parameters[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        del self._parameters[name]

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._parameters))

    def __len__(self) -> int:
        return len(self._parameters)

    def __contains__(self, name: object) -> bool:
        return name in self._parameters

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParameterStore):
            return self._parameters == other._parameters
        return super().__eq__(other)

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return f"ParameterStore({dict(self.items())!r})"
