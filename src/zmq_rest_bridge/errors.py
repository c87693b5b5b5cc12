"""
Bridge Errors
=============

Exception taxonomy for the bridge.

    - BindFailure: a socket could not be bound at start-up (fatal)
    - MalformedMessage: an inbound multi-part message had the wrong shape
      (discarded, the channel keeps listening)
    - ForwardFailure: publishing a command on the outbound socket failed

"No new frame" is not an error and has no exception type.
"""

from asyncio import Future
from typing import Optional


class BridgeError(Exception):
    """Base class for all bridge errors."""


class BindFailure(BridgeError):
    """
    A channel socket could not be bound.

    Attributes:
        role: Channel role that failed to bind
        port: Port that was attempted
        reason: Underlying error text
        pending: Bind still running in a worker thread after a timeout
    """

    def __init__(
        self,
        role: str,
        port: int,
        reason: str,
        pending: Optional[Future] = None,
    ) -> None:
        self.role = role
        self.port = port
        self.reason = reason
        self.pending = pending
        super().__init__(f"{role} channel failed to bind port {port}: {reason}")


class MalformedMessage(BridgeError):
    """An inbound message could not be interpreted for its channel."""

    def __init__(self, role: str, reason: str) -> None:
        self.role = role
        self.reason = reason
        super().__init__(f"malformed {role} message: {reason}")


class ForwardFailure(BridgeError):
    """Publishing a command on the outbound socket failed."""

    def __init__(self, target: Optional[str], reason: str) -> None:
        self.target = target
        self.reason = reason
        super().__init__(f"failed to forward command to {target or '<broadcast>'}: {reason}")
