"""
Listener contract for asynchronous API calls.

A listener receives exactly one of on_result/on_error per dispatched command,
on the event loop that issued the call, unless the request was cancelled.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, runtime_checkable

from quarry_common.exceptions import QuarryError

if TYPE_CHECKING:
    from .commands import APIMethod


@runtime_checkable
class APIClientListener(Protocol):
    """Receives the outcome of an asynchronous API call."""

    def on_result(self, client: Any, method: APIMethod, result: Any) -> None: ...

    def on_error(self, client: Any, method: APIMethod, error: QuarryError) -> None: ...


class CallbackListener:
    """Adapts a plain callable fn(result, error) to APIClientListener."""

    def __init__(self, callback: Callable[[Optional[Any], Optional[QuarryError]], None]):
        self.callback = callback

    def on_result(self, client, method, result) -> None:
        self.callback(result, None)

    def on_error(self, client, method, error) -> None:
        self.callback(None, error)

