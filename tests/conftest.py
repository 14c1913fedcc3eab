"""Shared test fixtures for the Connect-4 room server."""

import pytest

from models import GameRoom


class FakeConnection:
    """Records everything a room sends to it."""

    def __init__(self, fail_sends=False):
        self.sent = []
        self.closed = None
        self.is_open = True
        self.fail_sends = fail_sends

    def send(self, message):
        if self.fail_sends:
            raise ConnectionResetError('peer went away')
        self.sent.append(message)

    def close(self, code, reason):
        self.closed = (code, reason)
        self.is_open = False

    def of_type(self, kind):
        return [m for m in self.sent if m['type'] == kind]

    @property
    def last(self):
        return self.sent[-1]


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def room(clock):
    return GameRoom('test-room', clock=clock)


@pytest.fixture
def conn_factory():
    def make(**kwargs):
        return FakeConnection(**kwargs)
    return make


@pytest.fixture
def seated(room, conn_factory):
    """A started room with both seats taken."""
    first = conn_factory()
    second = conn_factory()
    room.join(first)
    room.join(second)
    return first, second
