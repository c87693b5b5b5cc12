"""
Frame Data Model
=================

The video frame kept by the latest-value store.

Design Rules:
    - A Frame is immutable; a new arrival replaces the whole object
    - Payload bytes are never decoded or re-encoded
"""

from dataclasses import dataclass
from typing import Optional


DEFAULT_TARGET = "nobody"


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Most recent video frame received from the bus.

    Attributes:
        target: Nickname of the sender (not unique)
        width: Frame width in pixels (0 when unknown)
        height: Frame height in pixels (0 when unknown)
        payload: Encoded image bytes, passed through unchanged
        rotation: Rotation in degrees, raw-video channel only
        channel: Role of the channel the frame arrived on
    """

    target: str = DEFAULT_TARGET
    width: int = 0
    height: int = 0
    payload: bytes = b""
    rotation: Optional[int] = None
    channel: Optional[str] = None

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"frame dimensions must be >= 0, got {self.width}x{self.height}")

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the payload."""
        return (
            f"Frame(target={self.target!r}, "
            f"width={self.width}, height={self.height}, "
            f"bytes={len(self.payload)})"
        )
