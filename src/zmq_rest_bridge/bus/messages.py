"""
Bus Message Parsing
===================

Turns inbound multi-part messages into Frames and commands.

Message Shapes:
    chat-video:  [target, width, height, data]
    raw-video:   [target, rotation, data]  (the chat-video shape is also accepted)
    command:     [target, data]

Numeric fields travel as ASCII decimal strings. Any shape or number
problem raises MalformedMessage; callers discard the message.
"""

from typing import List, Tuple

from zmq_rest_bridge.errors import MalformedMessage
from zmq_rest_bridge.models.frame import DEFAULT_TARGET, Frame


def decode_target(raw: bytes) -> str:
    """Decode a target nickname, falling back to the default for empty targets."""
    target = raw.decode("utf-8", errors="replace")
    return target or DEFAULT_TARGET


def _parse_int(role: str, field: str, raw: bytes) -> int:
    try:
        return int(raw.decode("ascii").strip())
    except (UnicodeDecodeError, ValueError):
        raise MalformedMessage(role, f"{field} is not a number: {raw[:32]!r}") from None


def _parse_dimension(role: str, field: str, raw: bytes) -> int:
    value = _parse_int(role, field, raw)
    if value < 0:
        raise MalformedMessage(role, f"{field} must be >= 0, got {value}")
    return value


def parse_frame_message(role: str, parts: List[bytes]) -> Frame:
    """
    Parse a [target, width, height, data] message.

    Raises:
        MalformedMessage: Wrong part count or bad dimensions
    """
    if len(parts) != 4:
        raise MalformedMessage(role, f"expected 4 parts, got {len(parts)}")

    target, width, height, payload = parts
    return Frame(
        target=decode_target(target),
        width=_parse_dimension(role, "width", width),
        height=_parse_dimension(role, "height", height),
        payload=bytes(payload),
        channel=role,
    )


def parse_raw_video_message(role: str, parts: List[bytes]) -> Frame:
    """
    Parse a [target, rotation, data] message.

    Four-part messages are handed to parse_frame_message.

    Raises:
        MalformedMessage: Wrong part count or non-numeric rotation
    """
    if len(parts) == 4:
        return parse_frame_message(role, parts)
    if len(parts) != 3:
        raise MalformedMessage(role, f"expected 3 or 4 parts, got {len(parts)}")

    target, rotation, payload = parts
    return Frame(
        target=decode_target(target),
        payload=bytes(payload),
        rotation=_parse_int(role, "rotation", rotation),
        channel=role,
    )


def parse_command_message(role: str, parts: List[bytes]) -> Tuple[bytes, bytes]:
    """
    Split a [target, data] command message.

    Both parts are returned untouched so the command can be relayed verbatim.

    Raises:
        MalformedMessage: Wrong part count
    """
    if len(parts) != 2:
        raise MalformedMessage(role, f"expected 2 parts, got {len(parts)}")
    target, payload = parts
    return bytes(target), bytes(payload)
