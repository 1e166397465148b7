#!/usr/bin/env python3
"""
API Client - asynchronous entry points of the search API.

Every *_async method returns a Request immediately. The outcome reaches the
listener later, on the calling event loop. Operation errors are never raised
at the call site. Misuse does raise RuntimeError: calling a closed client, or
calling from outside a running loop on a client built without loop=.

Usage:
    client = APIClient(transport)

    async def main():
        request = client.list_indexes_async(CallbackListener(on_done))
        ...
        request.cancel()  # no callback after this
"""

import asyncio
from typing import Any, Dict, List, Optional

from quarry_common.config import config
from quarry_common.logging import get_bound_logger

from .commands import APIMethod, Command, Request
from .dispatcher import CommandDispatcher
from .listeners import APIClientListener
from .protocols import IndexQuery, Transport

logger = get_bound_logger("client")


class APIClient:
    """
    Entry point of the asynchronous search API.

    Every *_async method raises RuntimeError at the call site if the client was
    closed, or if it is called outside a running loop and no loop= was given.
    All other failures reach the listener.
    """

    def __init__(self, transport: Transport, dispatcher: Optional[CommandDispatcher] = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Args:
            transport: Synchronous transport performing the HTTP calls
            dispatcher: Dispatcher to use (one is created if omitted)
            loop: Loop for calls made outside a running loop
        """
        self.transport = transport
        self.dispatcher = dispatcher or CommandDispatcher(transport, source=self, loop=loop)
        if self.dispatcher.source is None:
            self.dispatcher.source = self

    def _submit(self, method: APIMethod, listener: APIClientListener, **arguments) -> Request:
        command = Command(method=method, arguments=arguments, listener=listener)
        logger.debug("client.submit", method=method.value, command_id=command.command_id)
        return self.dispatcher.dispatch(command)

    def list_indexes_async(self, listener: APIClientListener) -> Request:
        """
        List all existing indexes.

        Args:
            listener: Receives the result or error

        Returns:
            A cancellable request

        Raises:
            RuntimeError: If the client was closed or no loop is available
        """
        return self._submit(APIMethod.LIST_INDEXES, listener)

    def delete_index_async(self, index_name: str, listener: APIClientListener) -> Request:
        """
        Delete an index.

        Args:
            index_name: Name of the index to delete
            listener: Receives the result or error

        Returns:
            A cancellable request

        Raises:
            RuntimeError: If the client was closed or no loop is available
        """
        return self._submit(APIMethod.DELETE_INDEX, listener, index_name=index_name)

    def move_index_async(self, src_index_name: str, dst_index_name: str,
                         listener: APIClientListener) -> Request:
        """
        Move an existing index.

        Args:
            src_index_name: Index to move
            dst_index_name: New name; an existing destination is overwritten
            listener: Receives the result or error

        Returns:
            A cancellable request

        Raises:
            RuntimeError: If the client was closed or no loop is available
        """
        return self._submit(APIMethod.MOVE_INDEX, listener,
                            src_index_name=src_index_name, dst_index_name=dst_index_name)

    def copy_index_async(self, src_index_name: str, dst_index_name: str,
                         listener: APIClientListener) -> Request:
        """
        Copy an existing index.

        Args:
            src_index_name: Index to copy
            dst_index_name: Copy name; an existing destination is overwritten
            listener: Receives the result or error

        Returns:
            A cancellable request

        Raises:
            RuntimeError: If the client was closed or no loop is available
        """
        return self._submit(APIMethod.COPY_INDEX, listener,
                            src_index_name=src_index_name, dst_index_name=dst_index_name)

    def multiple_queries_async(self, queries: List[IndexQuery], listener: APIClientListener,
                               strategy: Optional[str] = None) -> Request:
        """
        Query several indexes with one API call.

        Args:
            queries: One IndexQuery per target index
            listener: Receives the result or error
            strategy: "none" or "stopIfEnoughMatches" (defaults to config)

        Returns:
            A cancellable request

        Raises:
            RuntimeError: If the client was closed or no loop is available
        """
        return self._submit(APIMethod.MULTIPLE_QUERIES, listener,
                            queries=list(queries),
                            strategy=strategy or config.multiple_queries_strategy)

    def batch_async(self, actions: List[Dict[str, Any]], listener: APIClientListener) -> Request:
        """
        Run a custom batch of operations.

        Args:
            actions: Batch operations, as JSON-compatible dicts
            listener: Receives the result or error

        Returns:
            A cancellable request

        Raises:
            RuntimeError: If the client was closed or no loop is available
        """
        return self._submit(APIMethod.BATCH, listener, actions=list(actions))

    async def close(self) -> Dict[str, int]:
        """Wait for in-flight commands and release worker threads."""
        return await self.dispatcher.shutdown()

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
