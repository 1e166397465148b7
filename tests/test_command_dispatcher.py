#!/usr/bin/env python3
"""
Tests for the command dispatcher.

The transport double blocks on gates so each test controls when a background
call finishes. Covered:
1. Delivery: exactly once, on the loop thread, in completion order
2. Cancellation before start, while running and at shutdown
3. Error paths: domain errors, unexpected exceptions, invalid arguments
4. Dispatching from a thread outside the loop
"""

import asyncio
import threading

import pytest

from quarry_client.commands import APIMethod, Command, CommandState, Request
from quarry_client.dispatcher import CommandDispatcher
from quarry_common.exceptions import InvalidRequestError, ServerError, TransportError


def make_command(listener, method=APIMethod.LIST_INDEXES, **arguments):
    return Command(method=method, arguments=arguments, listener=listener)


class TestCommandLifecycle:
    """Test Command outcome bookkeeping without a dispatcher"""

    def test_initial_state(self, listener):
        command = make_command(listener)

        assert command.state is CommandState.CREATED
        assert command.command_id.startswith("cmd_")
        assert command.result is None
        assert command.error is None
        assert not command.finished

    def test_outcome_is_set_once(self, listener):
        command = make_command(listener)
        command.set_result({"items": []})

        assert command.state is CommandState.COMPLETED
        with pytest.raises(RuntimeError):
            command.set_error(TransportError())

    def test_deliver_requires_outcome(self, listener):
        command = make_command(listener)
        with pytest.raises(RuntimeError):
            command.deliver(source=None)

    def test_deliver_once(self, listener):
        command = make_command(listener)
        command.set_error(TransportError("unreachable"))
        command.deliver(source="client")

        assert command.state is CommandState.DELIVERED
        assert listener.errors[0].message == "unreachable"
        with pytest.raises(RuntimeError):
            command.deliver(source="client")
        assert len(listener.events) == 1

    def test_execute_validates_arguments(self, transport, listener):
        command = make_command(listener, APIMethod.DELETE_INDEX)

        with pytest.raises(InvalidRequestError) as exc_info:
            command.execute(transport)

        assert exc_info.value.details["errors"]
        assert transport.calls == []

    def test_request_cancel_flag(self, listener):
        request = Request(make_command(listener))

        assert not request.cancelled
        assert request.cancel() is True
        assert request.cancelled
        assert "cancelled=True" in repr(request)

    def test_late_outcome_keeps_cancelled(self, listener):
        command = make_command(listener)
        assert command.mark_cancelled() is True

        command.set_result({"items": []})

        assert command.result == {"items": []}
        assert command.state is CommandState.CANCELLED
        assert command.start() is False
        with pytest.raises(RuntimeError):
            command.set_error(TransportError())

    def test_mark_cancelled_after_delivery(self, listener):
        command = make_command(listener)
        command.set_result({"items": []})
        command.deliver(source="client")

        assert command.mark_cancelled() is False
        assert command.state is CommandState.DELIVERED

    def test_cancelled_request_is_not_delivered(self, listener):
        request = Request(make_command(listener))
        request.command.set_result({"items": []})
        request.cancel()

        assert request.deliver("client") is False
        assert request.command.state is CommandState.COMPLETED
        assert listener.events == []

    def test_cancel_loses_to_delivery(self, listener):
        request = Request(make_command(listener))
        request.command.set_result({"items": []})

        assert request.deliver("client") is True
        assert request.cancel() is False
        assert not request.cancelled
        assert request.command.state is CommandState.DELIVERED
        assert listener.results == [{"items": []}]


class TestDelivery:
    """Test that outcomes reach the listener exactly once, on the loop"""

    @pytest.mark.asyncio
    async def test_result_is_delivered(self, transport, listener):
        transport.responses["list_indexes"] = {"items": [{"name": "albums"}]}

        async with CommandDispatcher(transport, source="client") as dispatcher:
            request = dispatcher.dispatch(make_command(listener))
            assert request.command.state in (CommandState.SCHEDULED, CommandState.RUNNING)

            await request.wait()

        assert request.done
        assert request.command.state is CommandState.DELIVERED
        assert len(listener.events) == 1
        kind, source, method, result, _ = listener.events[0]
        assert kind == "result"
        assert source == "client"
        assert method is APIMethod.LIST_INDEXES
        assert result == {"items": [{"name": "albums"}]}

    @pytest.mark.asyncio
    async def test_delivery_runs_on_loop_thread(self, transport, listener):
        async with CommandDispatcher(transport) as dispatcher:
            request = dispatcher.dispatch(make_command(listener))
            await request.wait()

        assert listener.events[0][4] == threading.get_ident()

    @pytest.mark.asyncio
    async def test_cancel_after_delivery_returns_false(self, transport, listener):
        async with CommandDispatcher(transport) as dispatcher:
            request = dispatcher.dispatch(make_command(listener))
            await request.wait()

            assert request.cancel() is False
            assert not request.cancelled

    @pytest.mark.asyncio
    async def test_completion_order(self, transport, listener, wait_event):
        """Test that a slow command started first is delivered last"""
        slow_gate = transport.gate("delete_index")

        async with CommandDispatcher(transport) as dispatcher:
            slow = dispatcher.dispatch(make_command(listener, APIMethod.DELETE_INDEX, index_name="slow"))
            await wait_event(transport.started_event("delete_index"))

            fast = dispatcher.dispatch(make_command(listener, APIMethod.LIST_INDEXES))
            await fast.wait()
            slow_gate.set()
            await slow.wait()

        methods = [event[2] for event in listener.events]
        assert methods == [APIMethod.LIST_INDEXES, APIMethod.DELETE_INDEX]

    @pytest.mark.asyncio
    async def test_listener_failure_does_not_stop_dispatcher(self, transport, failing_listener, listener):
        failing, healthy = failing_listener, listener

        async with CommandDispatcher(transport) as dispatcher:
            first = dispatcher.dispatch(make_command(failing))
            await first.wait()
            second = dispatcher.dispatch(make_command(healthy))
            await second.wait()

        assert first.command.state is CommandState.DELIVERED
        assert len(healthy.results) == 1


class TestErrors:
    """Test that failures arrive as errors, never raise at the call site"""

    @pytest.mark.asyncio
    async def test_server_error_is_delivered(self, transport, listener):
        transport.errors["delete_index"] = ServerError(404, "Index does not exist")

        async with CommandDispatcher(transport) as dispatcher:
            request = dispatcher.dispatch(
                make_command(listener, APIMethod.DELETE_INDEX, index_name="missing"))
            await request.wait()

        assert listener.results == []
        error = listener.errors[0]
        assert isinstance(error, ServerError)
        assert error.status == 404
        assert error.message == "HTTP 404: Index does not exist"
        assert request.command.error is error

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, transport, listener):
        boom = KeyError("boom")
        transport.errors["batch"] = boom

        async with CommandDispatcher(transport) as dispatcher:
            request = dispatcher.dispatch(make_command(listener, APIMethod.BATCH, actions=[]))
            await request.wait()

        error = listener.errors[0]
        assert isinstance(error, TransportError)
        assert error.code == "TRANSPORT_ERROR"
        assert error.__cause__ is boom

    @pytest.mark.asyncio
    async def test_invalid_arguments_are_delivered(self, transport, listener):
        async with CommandDispatcher(transport) as dispatcher:
            request = dispatcher.dispatch(
                make_command(listener, APIMethod.MOVE_INDEX, src_index_name="a"))
            await request.wait()

        assert isinstance(listener.errors[0], InvalidRequestError)
        assert transport.calls == []


class TestCancellation:
    """Test best-effort cancellation"""

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, transport, listener):
        async with CommandDispatcher(transport) as dispatcher:
            request = dispatcher.dispatch(make_command(listener))
            assert request.cancel() is True
            await request.wait()

        assert transport.calls == []
        assert listener.events == []
        assert request.command.state is CommandState.CANCELLED
        assert request.done

    @pytest.mark.asyncio
    async def test_cancel_while_running(self, transport, listener, wait_event):
        """Test that a running call finishes but is never delivered"""
        gate = transport.gate("list_indexes")
        transport.responses["list_indexes"] = {"items": []}

        async with CommandDispatcher(transport) as dispatcher:
            request = dispatcher.dispatch(make_command(listener))
            await wait_event(transport.started_event("list_indexes"))

            assert request.cancel() is True
            gate.set()
            await request.wait()

        assert len(transport.calls) == 1
        assert request.command.result == {"items": []}
        assert request.command.state is CommandState.CANCELLED
        assert listener.events == []

    @pytest.mark.asyncio
    async def test_cancel_one_of_many(self, transport, listener):
        async with CommandDispatcher(transport) as dispatcher:
            requests = [dispatcher.dispatch(make_command(listener)) for _ in range(3)]
            requests[1].cancel()
            await asyncio.gather(*(request.wait() for request in requests))

        assert len(listener.events) == 2
        assert [r.command.state for r in requests] == [
            CommandState.DELIVERED, CommandState.CANCELLED, CommandState.DELIVERED
        ]


class TestLifecycle:
    """Test loop selection and shutdown"""

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_commands(self, transport, listener):
        dispatcher = CommandDispatcher(transport)
        for _ in range(2):
            dispatcher.dispatch(make_command(listener))

        stats = await dispatcher.shutdown()

        assert stats["completed"] == stats["total"]
        assert stats["cancelled"] == 0
        assert len(listener.events) == 2
        assert dispatcher.pending_count == 0

    @pytest.mark.asyncio
    async def test_dispatch_after_shutdown_fails(self, transport, listener):
        dispatcher = CommandDispatcher(transport)
        await dispatcher.shutdown()

        with pytest.raises(RuntimeError):
            dispatcher.dispatch(make_command(listener))

    @pytest.mark.asyncio
    async def test_shutdown_timeout_cancels_pending(self, transport, listener, wait_event):
        gate = transport.gate("list_indexes")
        dispatcher = CommandDispatcher(transport)
        request = dispatcher.dispatch(make_command(listener))
        await wait_event(transport.started_event("list_indexes"))

        stats = await dispatcher.shutdown(timeout=0.05)

        assert stats == {"total": 1, "completed": 0, "cancelled": 1}
        assert request.command.state is CommandState.CANCELLED

        # The worker still finishes; its result is kept but never delivered
        gate.set()
        for _ in range(200):
            if request.command.result is not None:
                break
            await asyncio.sleep(0.01)

        assert request.command.result == {"method": "list_indexes", "args": []}
        assert request.command.state is CommandState.CANCELLED
        assert request.done
        assert listener.events == []

    @pytest.mark.asyncio
    async def test_cancel_from_another_thread(self, transport, listener, wait_event):
        gate = transport.gate("list_indexes")

        async with CommandDispatcher(transport) as dispatcher:
            request = dispatcher.dispatch(make_command(listener))
            await wait_event(transport.started_event("list_indexes"))

            assert await asyncio.to_thread(request.cancel) is True
            gate.set()
            await request.wait()

        assert request.command.state is CommandState.CANCELLED
        assert listener.events == []

    @pytest.mark.asyncio
    async def test_dispatch_from_worker_thread(self, transport, listener):
        """Test that commands issued off-loop still deliver on the given loop"""
        loop = asyncio.get_running_loop()
        dispatcher = CommandDispatcher(transport, loop=loop)

        request = await asyncio.to_thread(dispatcher.dispatch, make_command(listener))
        await request.wait()
        await dispatcher.shutdown()

        assert request.command.state is CommandState.DELIVERED
        assert listener.events[0][4] == threading.get_ident()

    def test_dispatch_without_loop_fails(self, transport, listener):
        dispatcher = CommandDispatcher(transport)
        with pytest.raises(RuntimeError):
            dispatcher.dispatch(make_command(listener))

    @pytest.mark.asyncio
    async def test_worker_threads_are_named(self, transport, listener):
        seen = []
        original = transport.list_indexes

        def recording_list_indexes():
            seen.append(threading.current_thread().name)
            return original()

        transport.list_indexes = recording_list_indexes

        async with CommandDispatcher(transport, thread_name_prefix="test_dispatch") as dispatcher:
            await dispatcher.dispatch(make_command(listener)).wait()

        assert seen[0].startswith("test_dispatch")
