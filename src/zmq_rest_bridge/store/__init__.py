"""
Store Module
============

In-memory latest-value state shared by listeners and the HTTP gateway.
"""

from zmq_rest_bridge.store.latest import LatestValueStore


__all__ = [
    "LatestValueStore",
]
