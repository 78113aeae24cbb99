# tests/conftest.py
import random

import pytest

from reconnecting_socket.config import BackoffConfig
from reconnecting_socket.core import ReconnectingSocket


class FakeTimer:
    def __init__(self, delay, callback, args):
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Stands in for the event loop's call_later so timers fire only when asked."""

    def __init__(self):
        self.timers = []

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled]

    def fire(self):
        """Run the oldest pending timer; returns its delay in seconds."""
        timer = self.pending[0]
        self.timers.remove(timer)
        timer.callback(*timer.args)
        return timer.delay


class FakeHandle:
    def __init__(self, number):
        self.number = number
        self.destroyed = False

    def __repr__(self):
        return f"<FakeHandle {self.number}>"


class Recorder:
    """Hook implementation that records every call."""

    def __init__(self, fail_create=None):
        self.handles = []
        self.calls = []
        self.fail_create = fail_create

    def create(self, core, first_open):
        self.calls.append(("create", first_open))
        if self.fail_create is not None:
            raise self.fail_create
        handle = FakeHandle(len(self.handles) + 1)
        self.handles.append(handle)
        return handle

    def destroy(self, handle):
        self.calls.append(("destroy", handle))
        handle.destroyed = True

    def on_open(self, handle, first_open):
        self.calls.append(("on_open", handle, first_open))

    def on_close(self, handle):
        self.calls.append(("on_close", handle))

    def on_fail(self, err):
        self.calls.append(("on_fail", err))

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


@pytest.fixture
def fake_loop():
    return FakeLoop()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_socket(fake_loop, recorder):
    def factory(hooks=None, **backoff):
        options = {"initial_delay": 100, "max_delay": 1000, "randomization_factor": 0}
        options.update(backoff)
        return ReconnectingSocket(
            hooks or recorder,
            backoff=BackoffConfig(**options),
            name="test-socket",
            rng=random.Random(7),
            loop=fake_loop,
        )
    return factory


@pytest.fixture
def events():
    """Attach to a socket and collect (kind, payload) tuples in order."""
    collected = []

    def attach(socket):
        for kind in ("info", "state", "error"):
            socket.on(kind, lambda payload, kind=kind: collected.append((kind, payload)))
        return collected

    return attach

