"""
Latest-Value Store
==================

Single-slot mailbox holding the newest Frame and an unread flag.

This is the only state shared between the bus listeners (writers) and
the HTTP gateway (reader).

Design Rules:
    - One slot; a write always replaces the previous Frame
    - read_and_clear() is test-and-clear: one read per arrival sees it
    - No queue, no history, no backpressure
    - Every access goes through one lock, so the store stays correct
      even when writers and readers run on different threads
"""

import logging
import threading
from typing import Optional, Tuple

from zmq_rest_bridge.models.frame import Frame


logger = logging.getLogger(__name__)


class LatestValueStore:
    """
    Holds the most recently written Frame.

    Example:
        store = LatestValueStore()

        # Listener
        store.write(frame)

        # HTTP poller
        frame, was_unread = store.read_and_clear()
        if frame is None:
            ...  # nothing new since the last read
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame: Optional[Frame] = None
        self._unread: bool = False
        self._total_written: int = 0
        self._total_read: int = 0
        self._overwritten_unread: int = 0

    @property
    def unread(self) -> bool:
        """Whether a frame has arrived since the last successful read."""
        with self._lock:
            return self._unread

    def write(self, frame: Frame) -> None:
        """
        Replace the current frame and mark it unread.

        Args:
            frame: Newly arrived frame
        """
        with self._lock:
            if self._unread:
                self._overwritten_unread += 1
            self._frame = frame
            self._unread = True
            self._total_written += 1

    def read_and_clear(self) -> Tuple[Optional[Frame], bool]:
        """
        Consume the current frame if it has not been read yet.

        Returns:
            (frame, True) for the first read after an arrival,
            (None, False) otherwise.
        """
        with self._lock:
            if not self._unread:
                return None, False
            self._unread = False
            self._total_read += 1
            return self._frame, True

    def peek(self) -> Optional[Frame]:
        """Current frame without touching the unread flag."""
        with self._lock:
            return self._frame

    def metrics(self) -> dict:
        """
        Get store metrics for observability.

        Returns:
            Dict with unread, frames_written, frames_read, frames_overwritten
        """
        with self._lock:
            return {
                "unread": self._unread,
                "frames_written": self._total_written,
                "frames_read": self._total_read,
                "frames_overwritten": self._overwritten_unread,
            }
