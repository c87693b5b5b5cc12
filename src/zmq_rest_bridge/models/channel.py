"""
Channel Bindings
================

Socket role and mode for each bound channel.

Bindings are created once at start-up from Settings and never change
for the lifetime of the process.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

from zmq_rest_bridge.config import Settings


class ChannelRole(str, Enum):
    """What a bound socket is used for."""

    CHAT_VIDEO = "chat-video"
    RAW_VIDEO = "raw-video"
    COMMAND_IN = "command-in"
    COMMAND_OUT = "command-out"
    EVENT = "event"


class SocketMode(str, Enum):
    """ZeroMQ socket pattern used by a channel."""

    SUBSCRIBE = "subscribe"
    PULL = "pull"
    PUBLISH = "publish"


@dataclass(frozen=True)
class ChannelBinding:
    """
    One bound socket.

    Attributes:
        role: Channel role
        port: TCP port the socket binds to
        socket_mode: ZeroMQ pattern of the socket
        host: Interface to bind (``*`` for all)
    """

    role: ChannelRole
    port: int
    socket_mode: SocketMode
    host: str = "*"

    @property
    def endpoint(self) -> str:
        return f"tcp://{self.host}:{self.port}"


def inbound_bindings(settings: Settings) -> List[ChannelBinding]:
    """Build the bindings of every enabled inbound channel."""
    channels = settings.channels
    host = settings.bus.host
    candidates = [
        (channels.chat_video, ChannelRole.CHAT_VIDEO, SocketMode.SUBSCRIBE),
        (channels.raw_video, ChannelRole.RAW_VIDEO, SocketMode.SUBSCRIBE),
        (channels.command, ChannelRole.COMMAND_IN, SocketMode.PULL),
        (channels.event, ChannelRole.EVENT, SocketMode.PULL),
    ]
    return [
        ChannelBinding(role=role, port=config.port, socket_mode=mode, host=host)
        for config, role, mode in candidates
        if config.enabled
    ]


def command_out_binding(settings: Settings) -> ChannelBinding:
    """Binding of the command publisher."""
    return ChannelBinding(
        role=ChannelRole.COMMAND_OUT,
        port=settings.channels.command_publish_port,
        socket_mode=SocketMode.PUBLISH,
        host=settings.bus.host,
    )
