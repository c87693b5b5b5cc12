"""
Test Configuration
==================

Pytest fixtures and test configuration for the ZMQ REST bridge.
"""

import asyncio
import socket
from typing import List

import pytest
import zmq

from zmq_rest_bridge.config import Settings


class FakeSocket:
    """Stand-in for a bound PUB socket that records what was sent."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: List[List[bytes]] = []
        self.closed = False
        self.fail = fail

    async def send_multipart(self, parts):
        if self.fail:
            raise zmq.ZMQError(zmq.EAGAIN, "publish failed")
        self.sent.append(list(parts))

    def close(self, linger=None):
        self.closed = True


def free_port() -> int:
    """A loopback TCP port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def settings():
    """Default settings, isolated from the environment."""
    return Settings()


@pytest.fixture
def loopback_settings():
    """Settings with every channel on a free loopback port."""
    return Settings.model_validate({
        "bus": {"host": "127.0.0.1", "bind_timeout_seconds": 2.0},
        "channels": {
            "chat_video": {"port": free_port()},
            "raw_video": {"port": free_port()},
            "command": {"port": free_port()},
            "event": {"enabled": False, "port": free_port()},
            "command_publish": free_port(),
        },
    })


@pytest.fixture
def fake_socket():
    return FakeSocket()


@pytest.fixture
def failing_socket():
    return FakeSocket(fail=True)


@pytest.fixture
def sample_frame_parts():
    """A chat-video message as it arrives off the wire."""
    return [b"alice", b"640", b"480", bytes(range(16))]


@pytest.fixture
def socket_factory():
    """Build FakeSockets inside a test."""
    return FakeSocket


class ScriptedSocket(FakeSocket):
    """Receiving socket that replays messages, raising any exception in the script."""

    def __init__(self, script) -> None:
        super().__init__()
        self.script = list(script)

    async def recv_multipart(self):
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        # Idle like a quiet socket until the listener is cancelled
        await asyncio.Event().wait()


@pytest.fixture
def scripted_socket():
    """Build ScriptedSockets inside a test."""
    return ScriptedSocket
