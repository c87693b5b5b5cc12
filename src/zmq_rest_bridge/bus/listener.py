"""
Channel Listeners
=================

Inbound bus channels.

Each listener owns one bound receiving socket and runs a receive loop
as an asyncio task. Every multi-part message is handed to handle():

    - VideoListener: writes a Frame into the LatestValueStore (chat-video),
      or counts and republishes it (raw-video)
    - CommandListener: relays the command through the CommandForwarder
    - EventListener: counts and logs (reserved channel)

Design Rules:
    - A malformed message is logged and discarded; the loop continues
    - A failed relay is logged; the loop continues
    - Any other handler error is logged with its traceback; the loop continues
    - stop() cancels the loop and closes the socket
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

import zmq

from zmq_rest_bridge.bus.forwarder import CommandForwarder, VideoRelay
from zmq_rest_bridge.bus.messages import (
    parse_command_message,
    parse_frame_message,
    parse_raw_video_message,
)
from zmq_rest_bridge.errors import ForwardFailure, MalformedMessage
from zmq_rest_bridge.models.channel import ChannelBinding, ChannelRole
from zmq_rest_bridge.models.frame import Frame
from zmq_rest_bridge.store.latest import LatestValueStore


logger = logging.getLogger(__name__)


class ListenerMetrics:
    """Metrics for ChannelListener observability."""

    __slots__ = (
        "messages_received",
        "messages_handled",
        "malformed_messages",
        "forward_failures",
        "handler_errors",
    )

    def __init__(self) -> None:
        self.messages_received: int = 0
        self.messages_handled: int = 0
        self.malformed_messages: int = 0
        self.forward_failures: int = 0
        self.handler_errors: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "messages_received": self.messages_received,
            "messages_handled": self.messages_handled,
            "malformed_messages": self.malformed_messages,
            "forward_failures": self.forward_failures,
            "handler_errors": self.handler_errors,
        }


class ChannelListener(ABC):
    """
    Receive loop for one bound inbound socket.

    Attributes:
        binding: Role, port and mode of the socket
        running: Whether the receive loop is active
        metrics: Operational counters

    Example:
        socket = await bind_socket(context, binding, timeout=5.0)
        listener = CommandListener(binding, socket, forwarder)
        listener.start()
        ...
        await listener.stop()
    """

    def __init__(self, binding: ChannelBinding, socket) -> None:
        self.binding = binding
        self._socket = socket
        self._task: Optional[asyncio.Task] = None
        self._running: bool = False
        self.metrics = ListenerMetrics()

    @property
    def role(self) -> str:
        return self.binding.role.value

    @property
    def running(self) -> bool:
        return self._running

    @abstractmethod
    async def handle(self, parts: List[bytes]) -> None:
        """
        Process one inbound multi-part message.

        Raises:
            MalformedMessage: If the message does not fit the channel
            ForwardFailure: If a relayed command could not be published
        """

    async def dispatch(self, parts: List[bytes]) -> bool:
        """
        Handle one message, containing per-message errors.

        Returns:
            True if the message was handled, False if it was discarded
        """
        self.metrics.messages_received += 1
        try:
            await self.handle(parts)
        except MalformedMessage as e:
            self.metrics.malformed_messages += 1
            logger.warning(f"Discarding message on {self.role} (port {self.binding.port}): {e.reason}")
            return False
        except ForwardFailure as e:
            self.metrics.forward_failures += 1
            logger.error(f"{self.role} relay failed: {e.reason}")
            return False
        except Exception:
            self.metrics.handler_errors += 1
            logger.exception(f"Unexpected error handling {self.role} message on port {self.binding.port}")
            return False
        self.metrics.messages_handled += 1
        return True

    async def run(self) -> None:
        """Receive and dispatch messages until stopped."""
        self._running = True
        logger.info(f"{self.role} listening on {self.binding.port}")

        while self._running:
            try:
                parts = await self._socket.recv_multipart()
            except zmq.ZMQError as e:
                if self._running:
                    logger.error(f"{self.role} receive failed on port {self.binding.port}: {e}")
                break
            await self.dispatch(parts)

        self._running = False
        logger.info(f"{self.role} listener stopped")

    def start(self) -> asyncio.Task:
        """Start the receive loop as a background task."""
        self._task = asyncio.create_task(self.run(), name=f"listener-{self.role}")
        return self._task

    async def stop(self, linger_ms: int = 0) -> None:
        """Cancel the receive loop and close the socket."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"{self.role} listener ended with error: {e}")
            self._task = None
        self._socket.close(linger=linger_ms)
        logger.info(f"Closed {self.role} socket on port {self.binding.port}")


class VideoListener(ChannelListener):
    """
    Video channel.

    Chat-video messages are [target, width, height, data] and each frame
    replaces the one served by GET /image. Raw-video messages are
    [target, rotation, data]; they are counted and republished through
    the VideoRelay when one is attached, and reach the store only when
    update_store is set.
    """

    def __init__(
        self,
        binding: ChannelBinding,
        socket,
        store: LatestValueStore,
        relay: Optional[VideoRelay] = None,
        update_store: bool = True,
    ) -> None:
        super().__init__(binding, socket)
        self._store = store
        self._relay = relay
        self._update_store = update_store
        self._parse: Callable[[str, List[bytes]], Frame] = (
            parse_raw_video_message
            if binding.role is ChannelRole.RAW_VIDEO
            else parse_frame_message
        )

    async def handle(self, parts: List[bytes]) -> None:
        frame = self._parse(self.role, parts)
        if self._update_store:
            self._store.write(frame)
            logger.debug(f"{self.role} frame stored: {frame!r}")
        else:
            logger.debug(f"{self.role} frame {self.metrics.messages_received} received: {frame!r}")
        if self._relay is not None:
            await self._relay.publish(frame)


class CommandListener(ChannelListener):
    """Command channel: [target, data] relayed to the command publisher."""

    def __init__(self, binding: ChannelBinding, socket, forwarder: CommandForwarder) -> None:
        super().__init__(binding, socket)
        self._forwarder = forwarder

    async def handle(self, parts: List[bytes]) -> None:
        target, payload = parse_command_message(self.role, parts)
        await self._forwarder.relay(target, payload)


class EventListener(ChannelListener):
    """Reserved event channel: messages are counted and logged only."""

    async def handle(self, parts: List[bytes]) -> None:
        logger.info(f"Event received on port {self.binding.port}: {len(parts)} parts")
