"""
Data Models
===========

Models:
    - Frame: Latest video frame with target and dimensions
    - ChannelRole, SocketMode, ChannelBinding: Socket bindings
    - CommandHeader, CommandEnvelope: Simple command envelope
"""

from zmq_rest_bridge.models.frame import DEFAULT_TARGET, Frame
from zmq_rest_bridge.models.channel import (
    ChannelBinding,
    ChannelRole,
    SocketMode,
    command_out_binding,
    inbound_bindings,
)
from zmq_rest_bridge.models.command import CommandEnvelope, CommandHeader

__all__ = [
    "DEFAULT_TARGET",
    "Frame",
    "ChannelRole",
    "SocketMode",
    "ChannelBinding",
    "inbound_bindings",
    "command_out_binding",
    "CommandHeader",
    "CommandEnvelope",
]
