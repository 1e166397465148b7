#!/usr/bin/env python3
"""
Shared fixtures for quarry tests.

FakeTransport records every call and can hold a call open on a gate, so
tests decide exactly when a background operation finishes.
"""

import asyncio
import threading

import pytest


class FakeTransport:
    """Synchronous transport double with per-method responses, errors and gates."""

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.errors = {}
        self.gates = {}
        self.started = {}
        self._lock = threading.Lock()

    def gate(self, method: str) -> threading.Event:
        """Hold calls to method until the returned event is set."""
        event = threading.Event()
        self.gates[method] = event
        return event

    def started_event(self, method: str) -> threading.Event:
        with self._lock:
            return self.started.setdefault(method, threading.Event())

    def _call(self, method: str, *args):
        with self._lock:
            self.calls.append((method, args))
        self.started_event(method).set()

        gate = self.gates.get(method)
        if gate is not None:
            gate.wait(timeout=5)

        if method in self.errors:
            raise self.errors[method]
        return self.responses.get(method, {"method": method, "args": list(args)})

    def list_indexes(self):
        return self._call("list_indexes")

    def delete_index(self, index_name):
        return self._call("delete_index", index_name)

    def move_index(self, src_index_name, dst_index_name):
        return self._call("move_index", src_index_name, dst_index_name)

    def copy_index(self, src_index_name, dst_index_name):
        return self._call("copy_index", src_index_name, dst_index_name)

    def multiple_queries(self, queries, strategy):
        return self._call("multiple_queries", [q.to_request() for q in queries], strategy)

    def batch(self, actions):
        return self._call("batch", actions)


class RecordingListener:
    """Listener that records every callback with the thread it ran on."""

    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    def on_result(self, client, method, result):
        self.events.append(("result", client, method, result, threading.get_ident()))
        if self.fail:
            raise RuntimeError("listener failure")

    def on_error(self, client, method, error):
        self.events.append(("error", client, method, error, threading.get_ident()))
        if self.fail:
            raise RuntimeError("listener failure")

    @property
    def results(self):
        return [event[3] for event in self.events if event[0] == "result"]

    @property
    def errors(self):
        return [event[3] for event in self.events if event[0] == "error"]


async def wait_for_thread_event(event: threading.Event, timeout: float = 5.0) -> None:
    """Wait on a threading.Event without blocking the loop."""
    assert await asyncio.to_thread(event.wait, timeout), "event was never set"


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def wait_event():
    return wait_for_thread_event


@pytest.fixture
def failing_listener():
    return RecordingListener(fail=True)
