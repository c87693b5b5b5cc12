"""
ZMQ REST Bridge Main Application
================================

FastAPI entry point: HTTP polling on one side, ZeroMQ sockets on the other.

Endpoints:
    GET  /                  - Service information
    GET  /health            - Liveness probe
    GET  /ready             - Readiness probe (bridge listening?)
    GET  /metrics           - Channel, store and command counters
    GET  /image             - Newest frame, once per arrival
    POST /command           - Forward a JSON command to all targets
    POST /command/{target}  - Forward a JSON command to one target
    POST /simplecommand     - Forward a JSON command wrapped in the envelope

Responses:
    GET /image returns the raw frame bytes, or {"success": false} when no
    frame arrived since the last read. Command endpoints return
    {"success": true} once the command is published, 400 for a body that
    is not JSON and 502 when the publish failed.
"""

import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Tuple
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from zmq_rest_bridge.bridge import Bridge
from zmq_rest_bridge.config import Settings, settings
from zmq_rest_bridge.errors import ForwardFailure


logger = logging.getLogger(__name__)


class InvalidBody(ValueError):
    pass


# =============================================================================
# Helpers
# =============================================================================

def get_bridge(request: Request) -> Bridge:
    return request.app.state.bridge


async def read_json_body(request: Request) -> Tuple[bytes, Any]:
    """Return the raw body and its parsed JSON value."""
    raw = await request.body()
    try:
        return raw, json.loads(raw)
    except ValueError as e:
        raise InvalidBody(str(e)) from e


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": error}, status_code=status_code)


async def forward_command(
    request: Request,
    target: str,
    wrap: bool,
) -> JSONResponse:
    """Shared body of the command endpoints."""
    bridge = get_bridge(request)
    try:
        raw, body = await read_json_body(request)
    except InvalidBody as e:
        logger.warning(f"Rejected command for {target!r}: body is not JSON ({e})")
        return _failure(400, "request body is not valid JSON")

    forwarder = bridge.forwarder
    if forwarder is None:
        return _failure(503, "bridge not listening")

    try:
        if wrap:
            await forwarder.submit(target, body, envelope=forwarder.default_header)
        else:
            await forwarder.submit(target, raw)
    except ForwardFailure as e:
        logger.error(f"post-command {e}")
        return _failure(502, "command could not be forwarded")

    return JSONResponse({"success": True})


# =============================================================================
# Application Factory
# =============================================================================

def create_app(app_settings: Settings = settings) -> FastAPI:
    """
    Build the FastAPI application.

    The bridge is bound in the lifespan handler; start-up fails with
    BindFailure when any channel cannot bind.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Bind sockets on startup, close them on shutdown."""
        app.state.started_at = time.time()
        logger.info(f"Starting {app_settings.bridge.name} {app_settings.bridge.version}")

        bridge = app.state.bridge
        await bridge.start()

        yield

        logger.info("Shutting down gracefully...")
        await bridge.stop()

    app = FastAPI(
        title="ZMQ REST Bridge",
        description="Latest-value bridge from ZeroMQ frames and commands to HTTP polling",
        version=app_settings.bridge.version,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.bridge = Bridge(app_settings)
    app.state.started_at = time.time()

    # -------------------------------------------------------------------------
    # Service endpoints
    # -------------------------------------------------------------------------

    @app.get("/")
    async def root() -> JSONResponse:
        """Service information endpoint."""
        channels = app_settings.channels
        return JSONResponse({
            "service": "ZMQ REST Bridge",
            "name": app_settings.bridge.name,
            "version": app_settings.bridge.version,
            "ports": {
                "chat_video": channels.chat_video.port,
                "raw_video": channels.raw_video.port,
                "command": channels.command.port,
                "command_publish": channels.command_publish_port,
                "event": channels.event.port,
                "http": app_settings.server.port,
            },
        })

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness probe. Always 200 while the process runs."""
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": round(time.time() - app.state.started_at, 1),
        })

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        """
        Readiness probe.

        Returns 200 while the bridge is listening, 503 otherwise.
        frame_pending tells whether GET /image would return a frame.
        """
        bridge = get_bridge(request)
        state = bridge.state.value if bridge.state else None
        if bridge.is_listening:
            return JSONResponse({
                "status": "ready",
                "bridge_state": state,
                "frame_pending": bridge.store.unread,
            })
        return JSONResponse(
            {"status": "not_ready", "bridge_state": state},
            status_code=503,
        )

    @app.get("/metrics")
    async def metrics(request: Request) -> JSONResponse:
        """Detailed counters for observability."""
        return JSONResponse({
            "uptime_seconds": round(time.time() - app.state.started_at, 1),
            **get_bridge(request).metrics(),
        })

    # -------------------------------------------------------------------------
    # Polling endpoints
    # -------------------------------------------------------------------------

    @app.get("/image")
    async def image(request: Request) -> Response:
        """Newest frame if it has not been read yet."""
        frame, _ = get_bridge(request).store.read_and_clear()
        if frame is None:
            return JSONResponse({"success": False})

        return Response(
            content=frame.payload,
            media_type=app_settings.server.image_media_type,
            headers={
                "X-Frame-Target": quote(frame.target),
                "X-Frame-Width": str(frame.width),
                "X-Frame-Height": str(frame.height),
            },
        )

    @app.post("/command")
    async def command(request: Request) -> JSONResponse:
        """Forward the JSON body to every command subscriber."""
        return await forward_command(request, target="", wrap=False)

    @app.post("/command/{target}")
    async def command_to_target(target: str, request: Request) -> JSONResponse:
        """Forward the JSON body addressed to one target."""
        return await forward_command(request, target=target, wrap=False)

    @app.post("/simplecommand")
    async def simple_command(request: Request) -> JSONResponse:
        """Forward the JSON body wrapped in the simple command envelope."""
        return await forward_command(request, target="", wrap=True)

    return app


app = create_app()


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Serve the bridge with uvicorn (SIGINT/SIGTERM shut it down gracefully)."""
    import uvicorn

    uvicorn.run(
        "zmq_rest_bridge.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run()
