"""
Canonical Codec - URL query string <-> ParameterStore.

Serialization is deterministic: keys are emitted in sorted order and spaces
are percent-encoded as %20 rather than '+'. Parsing is tolerant: malformed
segments are skipped, never fatal.
"""

from typing import Mapping, Optional
from urllib.parse import quote, unquote_plus

from .store import ParameterStore


def percent_encode(text: str) -> str:
    """Percent-encode text as UTF-8; space becomes %20 and '+' becomes %2B."""
    return quote(text, safe="")


def percent_decode(text: str) -> str:
    """Decode a percent-encoded component. '+' decodes to a space for form-encoded input."""
    return unquote_plus(text)


def serialize(parameters: Mapping[str, Optional[str]]) -> str:
    """
    Build the URL query string for a set of parameters.

    Args:
        parameters: Parameter mapping, usually a ParameterStore

    Returns:
        A string suitable for the query part of a URL (after the '?')
    """
    pairs = []
    for name in sorted(parameters):
        value = parameters[name]
        if value is None:
            pairs.append(percent_encode(name))
        else:
            pairs.append(f"{percent_encode(name)}={percent_encode(value)}")
    return "&".join(pairs)


def deserialize(query_string: str) -> ParameterStore:
    """
    Parse a URL query string into a ParameterStore.

    Segments without '=' carry no value and leave the key unset. Empty
    segments and segments with more than one '=' are ignored.

    Args:
        query_string: URL query parameter string, without the leading '?'

    Returns:
        The parsed store
    """
    store = ParameterStore()
    for segment in query_string.split("&"):
        if not segment:
            continue
        components = segment.split("=")
        if len(components) > 2:
            continue  # ignore invalid values
        name = percent_decode(components[0])
        value = percent_decode(components[1]) if len(components) == 2 else None
        store.set(name, value)
    return store
