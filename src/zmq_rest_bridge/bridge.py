"""
Bridge
======

Owns every socket, the latest-value store and the command forwarder.

States:
    LISTENING      all sockets bound, listeners running
    SHUTTING_DOWN  inbound sockets closing, no new frames accepted

Start-up binds the command publisher first, then the optional video
relay publishers, then every enabled inbound channel. Any BindFailure
closes what was already bound and aborts start-up. A bind that timed out
is still running in a worker thread; the context is destroyed only once
it has returned.
"""

import asyncio
import logging
from enum import Enum
from typing import List, Optional

import zmq.asyncio

from zmq_rest_bridge.bus.forwarder import CommandForwarder, VideoRelay
from zmq_rest_bridge.bus.listener import (
    ChannelListener,
    CommandListener,
    EventListener,
    VideoListener,
)
from zmq_rest_bridge.bus.sockets import bind_socket
from zmq_rest_bridge.config import Settings
from zmq_rest_bridge.errors import BindFailure
from zmq_rest_bridge.models.channel import (
    ChannelBinding,
    ChannelRole,
    SocketMode,
    command_out_binding,
    inbound_bindings,
)
from zmq_rest_bridge.models.command import CommandHeader
from zmq_rest_bridge.store.latest import LatestValueStore


logger = logging.getLogger(__name__)


class BridgeState(str, Enum):
    LISTENING = "LISTENING"
    SHUTTING_DOWN = "SHUTTING_DOWN"


class Bridge:
    """
    The ZeroMQ side of the service.

    Attributes:
        settings: Loaded configuration
        store: Latest-value store read by GET /image
        forwarder: Command publisher, set once start() has bound it
        listeners: Running inbound listeners

    Example:
        bridge = Bridge(settings)
        await bridge.start()     # raises BindFailure on any bind error
        ...
        await bridge.stop()
    """

    def __init__(
        self,
        settings: Settings,
        context: Optional[zmq.asyncio.Context] = None,
    ) -> None:
        self.settings = settings
        self.store = LatestValueStore()
        self.forwarder: Optional[CommandForwarder] = None
        self.video_relay: Optional[VideoRelay] = None
        self.listeners: List[ChannelListener] = []

        self._context = context
        self._owns_context = context is None
        self._state: Optional[BridgeState] = None
        self._pending_binds: List[asyncio.Future] = []

    @property
    def state(self) -> Optional[BridgeState]:
        """Current state, None before start()."""
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is BridgeState.LISTENING

    async def start(self) -> None:
        """
        Bind all sockets and start the listeners.

        Raises:
            BindFailure: If any socket could not be bound
        """
        if self._context is None:
            self._context = zmq.asyncio.Context()

        bus = self.settings.bus
        try:
            pub_socket = await bind_socket(
                self._context,
                command_out_binding(self.settings),
                timeout=bus.bind_timeout_seconds,
                linger_ms=bus.linger_ms,
            )
            self.forwarder = CommandForwarder(
                pub_socket,
                default_header=CommandHeader.from_config(self.settings.envelope),
            )

            if self.settings.video_relay.enabled and self.settings.channels.raw_video.enabled:
                self.video_relay = await self._bind_video_relay()

            for binding in inbound_bindings(self.settings):
                socket = await bind_socket(
                    self._context,
                    binding,
                    timeout=bus.bind_timeout_seconds,
                    linger_ms=bus.linger_ms,
                )
                self.listeners.append(self._create_listener(binding, socket))
        except BindFailure as e:
            logger.error(f"Start-up aborted: {e}")
            if e.pending is not None:
                self._pending_binds.append(e.pending)
            await self._close_all()
            raise

        for listener in self.listeners:
            listener.start()

        self._state = BridgeState.LISTENING
        logger.info(
            f"Bridge listening: channels={[l.role for l in self.listeners]} "
            f"command_publish_port={self.settings.channels.command_publish_port}"
        )

    async def stop(self) -> None:
        """Close inbound sockets first, then the publishers."""
        if self._state is BridgeState.SHUTTING_DOWN:
            return
        self._state = BridgeState.SHUTTING_DOWN
        logger.info("Close ZeroMQ -> REST bridge")
        await self._close_all()
        logger.info("Bridge shutdown complete")

    async def _bind_video_relay(self) -> VideoRelay:
        bus = self.settings.bus
        video_port = self.settings.channels.raw_video.port
        sockets = []
        for port in (
            self.settings.video_relay.raw_port(video_port),
            self.settings.video_relay.base64_port(video_port),
        ):
            binding = ChannelBinding(
                role=ChannelRole.RAW_VIDEO,
                port=port,
                socket_mode=SocketMode.PUBLISH,
                host=bus.host,
            )
            try:
                sockets.append(
                    await bind_socket(
                        self._context,
                        binding,
                        timeout=bus.bind_timeout_seconds,
                        linger_ms=bus.linger_ms,
                    )
                )
            except BindFailure:
                for socket in sockets:
                    socket.close(linger=0)
                raise
        return VideoRelay(*sockets)

    def _create_listener(self, binding: ChannelBinding, socket) -> ChannelListener:
        if binding.role is ChannelRole.CHAT_VIDEO:
            return VideoListener(binding, socket, self.store)
        if binding.role is ChannelRole.RAW_VIDEO:
            return VideoListener(
                binding,
                socket,
                self.store,
                relay=self.video_relay,
                update_store=self.settings.channels.raw_video_updates_image,
            )
        if binding.role is ChannelRole.COMMAND_IN:
            return CommandListener(binding, socket, self.forwarder)
        return EventListener(binding, socket)

    async def _close_all(self) -> None:
        linger = self.settings.bus.linger_ms
        for listener in self.listeners:
            await listener.stop(linger_ms=linger)
        self.listeners = []

        if self.video_relay is not None:
            self.video_relay.close(linger_ms=linger)
            self.video_relay = None
        if self.forwarder is not None:
            self.forwarder.close(linger_ms=linger)

        if self._owns_context and self._context is not None:
            if await self._wait_for_pending_binds():
                self._context.destroy(linger=0)
            else:
                logger.warning("Bind still running in a worker thread, leaving ZeroMQ context open")
            self._context = None

    async def _wait_for_pending_binds(self) -> bool:
        """Wait for timed-out binds to return. False if any is still running."""
        pending = [f for f in self._pending_binds if not f.done()]
        if pending:
            _, pending = await asyncio.wait(pending, timeout=self.settings.bus.bind_timeout_seconds)
        # Socket close callbacks run on the next loop iteration
        await asyncio.sleep(0)
        self._pending_binds = list(pending)
        return not pending

    def metrics(self) -> dict:
        """Counters from every component."""
        data = {
            "state": self._state.value if self._state else None,
            "channels": {
                listener.role: listener.metrics.to_dict() for listener in self.listeners
            },
            **self.store.metrics(),
        }
        last = self.store.peek()
        data["last_frame"] = (
            {"target": last.target, "width": last.width, "height": last.height, "bytes": len(last.payload)}
            if last is not None
            else None
        )
        if self.forwarder is not None:
            data.update(self.forwarder.metrics())
        if self.video_relay is not None:
            data["video_frames_relayed"] = self.video_relay.frames_relayed
            data["video_relay_errors"] = self.video_relay.relay_errors
        return data
