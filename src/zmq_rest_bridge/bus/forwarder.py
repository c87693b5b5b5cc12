"""
Command Forwarder
=================

Publishes commands on the outbound command socket.

Two sources feed the same publish socket:
    - relay(): commands received on the bus command channel, sent verbatim
    - submit(): commands posted over HTTP, serialized to JSON and
      optionally wrapped in a CommandEnvelope

Design Rules:
    - One socket, one monotonic command counter shared by both paths
    - Publish order equals call order
    - A failed publish raises ForwardFailure; the caller decides what
      the failure means for its client
"""

import base64
import json
import logging
import threading
from typing import Any, List, Optional, Union

import zmq

from zmq_rest_bridge.errors import ForwardFailure
from zmq_rest_bridge.models.command import CommandEnvelope, CommandHeader
from zmq_rest_bridge.models.frame import Frame


logger = logging.getLogger(__name__)


def encode_command_body(body: Any, envelope: Optional[CommandHeader] = None) -> bytes:
    """
    Serialize an HTTP command body to the bus wire format.

    Bytes without an envelope are passed through unchanged. Anything else
    is JSON encoded, wrapped as {"data": ..., "header": ...} when an
    envelope header is given.
    """
    if envelope is not None:
        return CommandEnvelope(data=body, header=envelope).model_dump_json().encode("utf-8")
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


class CommandForwarder:
    """
    Forwards bus and HTTP commands to the command publisher socket.

    Attributes:
        default_header: Header used for simple commands

    Example:
        forwarder = CommandForwarder(pub_socket, CommandHeader())

        await forwarder.relay(b"robot", b"forward")
        await forwarder.submit("", {"speed": 1}, envelope=forwarder.default_header)
    """

    def __init__(self, socket, default_header: Optional[CommandHeader] = None) -> None:
        """
        Initialize the forwarder.

        Args:
            socket: Bound publish socket (anything with an awaitable send_multipart)
            default_header: Envelope header for simple commands
        """
        self._socket = socket
        self.default_header = default_header or CommandHeader()

        self._lock = threading.Lock()
        self._command_count: int = 0
        self._relayed: int = 0
        self._submitted: int = 0
        self._failures: int = 0

    @property
    def command_count(self) -> int:
        """Total commands processed from both sources."""
        with self._lock:
            return self._command_count

    def _next_count(self, relayed: bool) -> int:
        with self._lock:
            self._command_count += 1
            if relayed:
                self._relayed += 1
            else:
                self._submitted += 1
            return self._command_count

    async def relay(self, target: Union[bytes, str], payload: bytes) -> int:
        """
        Republish a bus command verbatim.

        Returns:
            Command count after this command

        Raises:
            ForwardFailure: If the publish failed
        """
        count = self._next_count(relayed=True)
        target_bytes = target.encode("utf-8") if isinstance(target, str) else target
        logger.info(
            f"Command received {count}: target={target_bytes.decode('utf-8', errors='replace')!r} "
            f"bytes={len(payload)}"
        )
        await self._publish([target_bytes, payload])
        return count

    async def submit(
        self,
        target: str,
        body: Any,
        envelope: Optional[CommandHeader] = None,
    ) -> int:
        """
        Publish an HTTP-submitted command.

        Args:
            target: Command target ("" broadcasts)
            body: Parsed JSON body, or raw bytes
            envelope: Header to wrap the body with, None to send it bare

        Returns:
            Command count after this command

        Raises:
            ForwardFailure: If the publish failed
        """
        count = self._next_count(relayed=False)
        data = encode_command_body(body, envelope)
        logger.info(
            f"Send command {count}: target={target!r} bytes={len(data)} "
            f"envelope={envelope is not None}"
        )
        await self._publish([target.encode("utf-8"), data])
        return count

    async def _publish(self, parts: List[bytes]) -> None:
        try:
            await self._socket.send_multipart(parts)
        except zmq.ZMQError as e:
            with self._lock:
                self._failures += 1
            target = parts[0].decode("utf-8", errors="replace")
            logger.error(f"Command publish failed (target={target!r}): {e}")
            raise ForwardFailure(target, str(e)) from e

    def close(self, linger_ms: int = 0) -> None:
        self._socket.close(linger=linger_ms)

    def metrics(self) -> dict:
        """Export forwarder counters."""
        with self._lock:
            return {
                "command_count": self._command_count,
                "commands_relayed": self._relayed,
                "commands_submitted": self._submitted,
                "forward_failures": self._failures,
            }


class VideoRelay:
    """
    Republishes raw-video frames to other bus subscribers.

    Each frame goes out twice: [target, rotation, data] on the raw socket
    and [target, rotation, base64(data)] on the base64 socket. Publish
    errors are logged and counted, never raised.
    """

    def __init__(self, raw_socket, base64_socket) -> None:
        self._raw_socket = raw_socket
        self._base64_socket = base64_socket
        self.frames_relayed: int = 0
        self.relay_errors: int = 0

    async def publish(self, frame: Frame) -> None:
        target = frame.target.encode("utf-8")
        rotation = str(frame.rotation or 0).encode("ascii")
        try:
            await self._raw_socket.send_multipart([target, rotation, frame.payload])
            await self._base64_socket.send_multipart(
                [target, rotation, base64.b64encode(frame.payload)]
            )
        except zmq.ZMQError as e:
            self.relay_errors += 1
            logger.error(f"Video relay failed for {frame!r}: {e}")
            return
        self.frames_relayed += 1
        logger.debug(f"Video relayed {self.frames_relayed}")

    def close(self, linger_ms: int = 0) -> None:
        self._raw_socket.close(linger=linger_ms)
        self._base64_socket.close(linger=linger_ms)
