"""
Bus Module
==========

ZeroMQ side of the bridge.

    - bind_socket: Create and bind a socket for a ChannelBinding
    - VideoListener, CommandListener, EventListener: Inbound receive loops
    - CommandForwarder: Outbound command publisher
    - VideoRelay: Optional raw-video republisher
"""

from zmq_rest_bridge.bus.sockets import bind_socket
from zmq_rest_bridge.bus.forwarder import CommandForwarder, VideoRelay, encode_command_body
from zmq_rest_bridge.bus.listener import (
    ChannelListener,
    CommandListener,
    EventListener,
    ListenerMetrics,
    VideoListener,
)


__all__ = [
    "bind_socket",
    "CommandForwarder",
    "VideoRelay",
    "encode_command_body",
    "ChannelListener",
    "CommandListener",
    "EventListener",
    "ListenerMetrics",
    "VideoListener",
]
