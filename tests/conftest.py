"""Pytest configuration and fixtures for test suite."""

import io
import struct
import threading
import time
from typing import Dict, List

import pytest

from pressure_monitor.core.event_hub import EventHub
from pressure_monitor.core.models.pressure_data import MonitorSnapshot
from pressure_monitor.core.services.connection_controller import ConnectionController, connection_controller
from pressure_monitor.core.services.recorder import Recorder


def make_frame(*raw_values: int) -> bytes:
    """Build a 20-byte wire frame; missing values are padded with the last one."""
    values = list(raw_values) or [0]
    values += [values[-1]] * (10 - len(values))
    return struct.pack("<10h", *values)


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    """Poll until predicate() is true or the timeout expires."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FakeSocket:
    """
    Scripted stand-in for a connected TCP socket.

    recv() hands out the scripted chunks (splitting them to honour the requested
    size). Once the script is exhausted it either reports EOF or, with
    hold_open=True, blocks like an idle connection until shutdown()/close().
    """

    def __init__(self, chunks=(), hold_open: bool = True):
        self.chunks: List = list(chunks)
        self.hold_open = hold_open
        self.recv_calls = 0
        self.timeout = "unset"
        self.closed = False
        self.was_shutdown = False
        self._released = threading.Event()

    def settimeout(self, timeout):
        self.timeout = timeout

    def recv(self, size: int) -> bytes:
        self.recv_calls += 1
        if self._released.is_set():
            return b""
        if self.chunks:
            chunk = self.chunks.pop(0)
            if isinstance(chunk, Exception):
                raise chunk
            if len(chunk) > size:
                self.chunks.insert(0, chunk[size:])
                chunk = chunk[:size]
            return chunk
        if self.hold_open:
            self._released.wait(5.0)
        return b""

    def shutdown(self, how):
        self.was_shutdown = True
        self._released.set()

    def close(self):
        self.closed = True
        self._released.set()


class FakeSocketFactory:
    """Replaces socket.create_connection."""

    def __init__(self, sock: FakeSocket = None, error: Exception = None):
        self.sock = sock
        self.error = error
        self.calls = []

    def __call__(self, address, timeout=None):
        self.calls.append((address, timeout))
        if self.error is not None:
            raise self.error
        return self.sock


class MemoryLog(io.StringIO):
    """StringIO that keeps its content after close."""

    def __init__(self):
        super().__init__()
        self.content = ""
        self.was_closed = False

    def close(self):
        self.content = self.getvalue()
        self.was_closed = True
        super().close()

    def lines(self) -> List[str]:
        text = self.content if self.was_closed else self.getvalue()
        return text.splitlines()


class MemoryFileWriter:
    """In-memory FileWriter; one MemoryLog per opened file name."""

    def __init__(self):
        self.logs: Dict[str, MemoryLog] = {}

    def open_log(self, filename: str) -> MemoryLog:
        log = MemoryLog()
        self.logs[filename] = log
        return log

    def only_log(self) -> MemoryLog:
        assert len(self.logs) == 1, f"expected one log, got {list(self.logs)}"
        return next(iter(self.logs.values()))


@pytest.fixture
def memory_writer() -> MemoryFileWriter:
    return MemoryFileWriter()


@pytest.fixture
def recorder(memory_writer) -> Recorder:
    return Recorder(memory_writer)


@pytest.fixture
def hub() -> EventHub:
    return EventHub()


@pytest.fixture
def controller(recorder, hub):
    """Controller wired to fakes; the socket is set per test on controller.socket_factory."""
    ctrl = ConnectionController(recorder, join_timeout=2.0, socket_factory=FakeSocketFactory(), hub=hub)
    yield ctrl
    ctrl.shutdown()


@pytest.fixture
def global_controller(recorder, monkeypatch):
    """The app-wide controller, isolated from the network and the disk."""
    factory = FakeSocketFactory()
    monkeypatch.setattr(connection_controller, "recorder", recorder)
    monkeypatch.setattr(connection_controller, "socket_factory", factory)
    connection_controller._snapshot = MonitorSnapshot()
    yield connection_controller
    connection_controller.shutdown()
    connection_controller._snapshot = MonitorSnapshot()
