"""
Socket Binding
==============

Creates and binds ZeroMQ sockets for channel bindings.

Every bind runs in a worker thread under a timeout. A bind that fails
raises BindFailure and the socket is closed at once. A bind that times
out raises BindFailure carrying the still-running bind future; the
socket is closed only after that thread has returned.
"""

import asyncio
import logging

import zmq
import zmq.asyncio

from zmq_rest_bridge.errors import BindFailure
from zmq_rest_bridge.models.channel import ChannelBinding, SocketMode


logger = logging.getLogger(__name__)


SOCKET_TYPES = {
    SocketMode.SUBSCRIBE: zmq.SUB,
    SocketMode.PULL: zmq.PULL,
    SocketMode.PUBLISH: zmq.PUB,
}


async def bind_socket(
    context: zmq.asyncio.Context,
    binding: ChannelBinding,
    timeout: float,
    linger_ms: int = 0,
) -> zmq.asyncio.Socket:
    """
    Create a socket for a binding and bind it.

    Args:
        context: Shared asyncio ZeroMQ context
        binding: Role, port and socket mode to bind
        timeout: Seconds to wait for the bind before giving up
        linger_ms: Linger applied when the socket is closed

    Returns:
        The bound socket

    Raises:
        BindFailure: If the port is unavailable or the bind timed out
    """
    socket = context.socket(SOCKET_TYPES[binding.socket_mode])
    socket.setsockopt(zmq.LINGER, linger_ms)
    if binding.socket_mode is SocketMode.SUBSCRIBE:
        socket.setsockopt(zmq.SUBSCRIBE, b"")

    loop = asyncio.get_running_loop()
    bind_future = loop.run_in_executor(None, socket.bind, binding.endpoint)
    done, _ = await asyncio.wait({bind_future}, timeout=timeout)

    if not done:
        # The worker thread still owns the socket; close it once bind returns
        bind_future.add_done_callback(lambda future: _close_after_bind(future, socket))
        logger.error(f"{binding.role.value} bind on {binding.endpoint} timed out after {timeout}s")
        raise BindFailure(
            binding.role.value,
            binding.port,
            f"bind timed out after {timeout}s",
            pending=bind_future,
        )

    try:
        bind_future.result()
    except zmq.ZMQError as e:
        socket.close(linger=0)
        logger.error(f"{binding.role.value} failed to bind {binding.endpoint}: {e}")
        raise BindFailure(binding.role.value, binding.port, str(e)) from e

    logger.info(f"{binding.role.value} {binding.socket_mode.value} socket bound on port {binding.port}")
    return socket


def _close_after_bind(future: asyncio.Future, socket: zmq.asyncio.Socket) -> None:
    if not future.cancelled() and future.exception() is not None:
        logger.debug(f"Late bind finished with error: {future.exception()}")
    socket.close(linger=0)
