#!/usr/bin/env python3
"""
Command Dispatcher - runs commands in the background, delivers on the loop.

Each dispatched command becomes an asyncio task on the event loop that issued
it. The task hands the blocking transport call to a worker thread and, once
the call returns, delivers the outcome to the command's listener back on the
loop. Deliveries are therefore serialized on the loop thread, in completion
order.

Cancellation is a flag, checked before the transport call starts and again
before delivery; a running transport call is never interrupted.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional, Set

from quarry_common.config import config
from quarry_common.exceptions import QuarryError, TransportError
from quarry_common.logging import command_context, get_bound_logger

from .commands import Command, CommandState, Request
from .protocols import Transport

logger = get_bound_logger("dispatcher")


class CommandDispatcher:
    """
    Schedules commands against a transport.

    Example:
        dispatcher = CommandDispatcher(transport)
        request = dispatcher.dispatch(Command(APIMethod.LIST_INDEXES, listener=listener))
        ...
        request.cancel()
    """

    def __init__(self, transport: Transport, source: Any = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 max_workers: Optional[int] = None,
                 thread_name_prefix: Optional[str] = None):
        """
        Args:
            transport: Synchronous transport executing the operations
            source: Object passed to listeners as the origin of a result
            loop: Loop used when dispatching from outside a running loop
            max_workers: Worker threads (defaults to config)
            thread_name_prefix: Worker thread names (defaults to config)
        """
        self.transport = transport
        self.source = source
        self._loop = loop
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or config.dispatcher_max_workers,
            thread_name_prefix=thread_name_prefix or config.dispatcher_thread_name_prefix
        )
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    # ========================================================================
    # SCHEDULING
    # ========================================================================

    def dispatch(self, command: Command) -> Request:
        """
        Schedule a command and return its cancellation handle immediately.

        Called from a coroutine, the command runs on the current loop. Called
        from another thread, it runs on the loop given at construction.

        Raises:
            RuntimeError: If the dispatcher is closed or no loop is available
        """
        if self._closed:
            raise RuntimeError("Dispatcher is closed")

        loop, on_loop = self._target_loop()
        request = Request(command)
        command.state = CommandState.SCHEDULED

        if on_loop:
            task = loop.create_task(self._run(request), name=command.command_id)
            self._track(task)
            request._future = task
        else:
            request._future = asyncio.run_coroutine_threadsafe(self._run(request), loop)

        logger.debug("command.scheduled",
                     command_id=command.command_id,
                     method=command.method.value)
        return request

    def _target_loop(self):
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and (self._loop is None or self._loop is running):
            return running, True
        if self._loop is not None:
            return self._loop, False
        raise RuntimeError("No running event loop; pass loop= to dispatch from a plain thread")

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ========================================================================
    # EXECUTION
    # ========================================================================

    async def _run(self, request: Request) -> None:
        """Drive one command from SCHEDULED to DELIVERED or CANCELLED."""
        command = request.command
        self._track(asyncio.current_task())

        if request.cancelled:
            self._drop(request, stage="before_start")
            return

        loop = asyncio.get_running_loop()
        try:
            async with command_context(command.method.value, command.arguments, command.command_id):
                await loop.run_in_executor(self._executor, self._execute, request)
        except asyncio.CancelledError:
            # Loop shutdown; the worker may still finish but nobody listens
            self._drop(request, stage="task_cancelled")
            raise

        if request.cancelled or not command.finished:
            self._drop(request, stage="after_run")
            return

        self._deliver(request)

    def _execute(self, request: Request) -> None:
        """Worker thread: call the transport and fill in the command."""
        command = request.command
        if request.cancelled or not command.start():
            return

        logger.debug("command.started",
                     command_id=command.command_id,
                     method=command.method.value)
        try:
            result = command.execute(self.transport)
        except QuarryError as e:
            logger.warning("command.failed",
                           command_id=command.command_id,
                           method=command.method.value,
                           error=e.to_dict())
            command.set_error(e)
        except Exception as e:
            logger.exception("command.crashed",
                             command_id=command.command_id,
                             method=command.method.value)
            error = TransportError(f"{type(e).__name__}: {e}")
            error.__cause__ = e
            command.set_error(error)
        else:
            command.set_result(result)

    def _deliver(self, request: Request) -> None:
        command = request.command
        try:
            delivered = request.deliver(self.source)
        except Exception:
            logger.exception("command.listener_failed",
                             command_id=command.command_id,
                             method=command.method.value)
            return

        if not delivered:
            # Cancelled from another thread after the check above
            self._drop(request, stage="before_delivery")
        else:
            logger.debug("command.delivered",
                         command_id=command.command_id,
                         method=command.method.value,
                         failed=command.error is not None)

    def _drop(self, request: Request, stage: str) -> None:
        command = request.command
        # The flag stops a queued worker; the state keeps a late outcome undelivered
        request.cancel()
        command.mark_cancelled()
        logger.info("command.cancelled",
                    command_id=command.command_id,
                    method=command.method.value,
                    stage=stage)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def shutdown(self, timeout: Optional[float] = None) -> Dict[str, int]:
        """
        Wait for in-flight commands, then release the worker threads.

        Args:
            timeout: Seconds to wait before cancelling (defaults to config)

        Returns:
            Cleanup statistics
        """
        if timeout is None:
            timeout = config.dispatcher_shutdown_timeout
        self._closed = True

        # Let freshly created tasks register themselves
        await asyncio.sleep(0)
        tasks = list(self._tasks)
        stats = {"total": len(tasks), "completed": 0, "cancelled": 0}

        if tasks:
            logger.info(f"Waiting for {len(tasks)} commands to complete")
            done, pending = await asyncio.wait(tasks, timeout=timeout)
            stats["completed"] = len(done)
            if pending:
                logger.warning(f"Cancelling {len(pending)} commands")
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
                stats["cancelled"] = len(pending)

        self._executor.shutdown(wait=False)
        return stats

    async def __aenter__(self) -> "CommandDispatcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()
