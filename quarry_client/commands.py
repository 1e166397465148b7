#!/usr/bin/env python3
"""
Commands - one asynchronous API operation and its outcome.

A Command is created on the calling side, filled in by a background worker
and consumed once by delivery to its listener:

    CREATED -> SCHEDULED -> RUNNING -> COMPLETED | FAILED -> DELIVERED

CANCELLED is terminal and replaces delivery when the caller cancelled the
Request before the outcome was handed to the listener.
"""

import asyncio
import concurrent.futures
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from quarry_common.exceptions import InvalidRequestError, QuarryError

from .listeners import APIClientListener
from .protocols import (
    BatchArguments,
    IndexNameArguments,
    IndexPairArguments,
    MultipleQueriesArguments,
    Transport,
)


class APIMethod(Enum):
    """Operations that can be dispatched asynchronously."""
    LIST_INDEXES = "listIndexes"
    DELETE_INDEX = "deleteIndex"
    MOVE_INDEX = "moveIndex"
    COPY_INDEX = "copyIndex"
    MULTIPLE_QUERIES = "multipleQueries"
    BATCH = "batch"


class CommandState(Enum):
    CREATED = "created"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Argument model per method; LIST_INDEXES takes none
ARGUMENT_MODELS = {
    APIMethod.DELETE_INDEX: IndexNameArguments,
    APIMethod.MOVE_INDEX: IndexPairArguments,
    APIMethod.COPY_INDEX: IndexPairArguments,
    APIMethod.MULTIPLE_QUERIES: MultipleQueriesArguments,
    APIMethod.BATCH: BatchArguments,
}


def generate_command_id() -> str:
    return f"cmd_{uuid.uuid4().hex[:8]}"


@dataclass
class Command:
    """An API operation, its listener and, once executed, its result or error."""
    method: APIMethod
    arguments: Dict[str, Any] = field(default_factory=dict)
    listener: Optional[APIClientListener] = None
    command_id: str = field(default_factory=generate_command_id)
    state: CommandState = CommandState.CREATED
    result: Any = None
    error: Optional[QuarryError] = None
    # Guards state transitions made from the loop and from worker threads
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)
    has_outcome: bool = field(default=False, repr=False, compare=False)

    @property
    def finished(self) -> bool:
        """True once the operation produced a result or an error."""
        return self.has_outcome

    def execute(self, transport: Transport) -> Any:
        """
        Run the operation synchronously against the transport.

        Returns:
            The transport's result

        Raises:
            InvalidRequestError: If the arguments do not fit the method
            QuarryError: Whatever the transport raises
        """
        model = ARGUMENT_MODELS.get(self.method)
        args = None
        if model is not None:
            try:
                args = model(**self.arguments)
            except ValidationError as e:
                raise InvalidRequestError(
                    f"Invalid arguments for {self.method.value}: {e.error_count()} error(s)",
                    details={"errors": e.errors(include_url=False)}
                ) from e

        if self.method is APIMethod.LIST_INDEXES:
            return transport.list_indexes()
        elif self.method is APIMethod.DELETE_INDEX:
            return transport.delete_index(args.index_name)
        elif self.method is APIMethod.MOVE_INDEX:
            return transport.move_index(args.src_index_name, args.dst_index_name)
        elif self.method is APIMethod.COPY_INDEX:
            return transport.copy_index(args.src_index_name, args.dst_index_name)
        elif self.method is APIMethod.MULTIPLE_QUERIES:
            return transport.multiple_queries(args.queries, args.strategy)
        elif self.method is APIMethod.BATCH:
            return transport.batch(args.actions)
        raise InvalidRequestError(f"Unsupported method: {self.method}")

    def start(self) -> bool:
        """Move to RUNNING unless the command was cancelled meanwhile."""
        with self.lock:
            if self.state is CommandState.CANCELLED:
                return False
            self.state = CommandState.RUNNING
            return True

    def set_result(self, result: Any) -> None:
        """
        Record a successful outcome.

        A cancelled command keeps the outcome but stays CANCELLED.
        """
        with self.lock:
            if self.finished:
                raise RuntimeError(f"Command {self.command_id} already has an outcome")
            self.result = result
            self.has_outcome = True
            if self.state is not CommandState.CANCELLED:
                self.state = CommandState.COMPLETED

    def set_error(self, error: QuarryError) -> None:
        """Record a failure; a cancelled command stays CANCELLED."""
        with self.lock:
            if self.finished:
                raise RuntimeError(f"Command {self.command_id} already has an outcome")
            self.error = error
            self.has_outcome = True
            if self.state is not CommandState.CANCELLED:
                self.state = CommandState.FAILED

    def mark_cancelled(self) -> bool:
        """
        Make CANCELLED the final state.

        Returns:
            False if the outcome was already delivered
        """
        with self.lock:
            if self.state is CommandState.DELIVERED:
                return False
            self.state = CommandState.CANCELLED
            return True

    def claim_delivery(self) -> None:
        """Move a finished command to DELIVERED, before the listener runs."""
        with self.lock:
            if self.state not in (CommandState.COMPLETED, CommandState.FAILED):
                raise RuntimeError(f"Command {self.command_id} cannot be delivered in state {self.state.value}")
            self.state = CommandState.DELIVERED

    def notify(self, source: Any) -> None:
        """Call the listener with the recorded outcome."""
        if self.listener is None:
            return
        if self.error is not None:
            self.listener.on_error(source, self.method, self.error)
        else:
            self.listener.on_result(source, self.method, self.result)

    def deliver(self, source: Any) -> None:
        """
        Hand the outcome to the listener, once.

        Args:
            source: Object reported to the listener as the origin (the client)
        """
        self.claim_delivery()
        self.notify(source)


class Request:
    """
    Cancellation handle for a dispatched command.

    Cancelling is best effort: a transport call that already started runs to
    completion, but its outcome is never delivered to the listener. cancel()
    may be called from any thread; it either wins against delivery or
    returns False.
    """

    def __init__(self, command: Command):
        self.command = command
        self._cancel_requested = threading.Event()
        self._future: Optional[Union[asyncio.Future, concurrent.futures.Future]] = None

    def cancel(self) -> bool:
        """
        Request cancellation.

        Returns:
            False if the outcome was already delivered, True otherwise
        """
        with self.command.lock:
            if self.command.state is CommandState.DELIVERED:
                return False
            self._cancel_requested.set()
            return True

    def deliver(self, source: Any) -> bool:
        """
        Deliver the outcome unless cancellation won.

        The cancel check and the move to DELIVERED happen under the command's
        lock; the listener runs outside it.

        Returns:
            True if the outcome was delivered
        """
        with self.command.lock:
            if self.cancelled:
                return False
            self.command.claim_delivery()
        self.command.notify(source)
        return True

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested.is_set()

    @property
    def done(self) -> bool:
        return self.command.state in (CommandState.DELIVERED, CommandState.CANCELLED)

    async def wait(self) -> None:
        """Wait until the command was delivered or dropped."""
        if self._future is None:
            raise RuntimeError("Request was never scheduled")
        await asyncio.wrap_future(self._future)

    def __repr__(self) -> str:
        return (f"Request(command_id={self.command.command_id!r}, "
                f"method={self.command.method.value!r}, state={self.command.state.value!r}, "
                f"cancelled={self.cancelled})")
