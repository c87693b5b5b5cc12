"""
ZMQ REST Bridge
===============

Latest-value bridge between ZeroMQ producers and HTTP pollers.

Video frames and commands arrive on ZeroMQ SUB/PULL sockets. HTTP clients
that cannot hold a socket open poll GET /image for the newest frame and
POST commands, which are published on a ZeroMQ PUB socket alongside
commands relayed from the bus.

Components:
    - store: LatestValueStore, a single-slot mailbox with test-and-clear reads
    - bus: Channel listeners, command forwarder and video relay
    - bridge: Socket lifecycle (Listening / ShuttingDown)
    - main: FastAPI polling gateway

Example:
    uvicorn zmq_rest_bridge.main:app --port 5000
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
