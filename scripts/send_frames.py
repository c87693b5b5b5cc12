#!/usr/bin/env python3
"""
Bridge Smoke Test Script
========================

Standalone script that drives a running bridge end to end.

This script:
    1. Connects a PUB socket to the chat-video port and publishes frames
    2. Connects a PUSH socket to the command port and pushes commands
    3. Subscribes to the command publisher to see the relayed commands
    4. Polls GET /image and POSTs /simplecommand over HTTP
    5. Reports a final summary

Prerequisites:
    - The bridge must be running (uvicorn zmq_rest_bridge.main:app)

Usage:
    python scripts/send_frames.py --frames 20
    python scripts/send_frames.py --host 10.0.0.5 --http-url http://10.0.0.5:5000
"""

import argparse
import logging
import os
import sys
import time

import httpx
import zmq


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def run_test(
    host: str,
    http_url: str,
    chat_video_port: int,
    command_port: int,
    frames: int,
    interval: float,
) -> dict:
    """
    Run the smoke test.

    Returns:
        Final counters dict
    """
    logger.info("=" * 60)
    logger.info("Bridge Smoke Test")
    logger.info("=" * 60)
    logger.info(f"Bus host: {host}")
    logger.info(f"HTTP URL: {http_url}")
    logger.info(f"Chat video port: {chat_video_port}")
    logger.info(f"Command port: {command_port} (publisher {command_port + 1})")
    logger.info("=" * 60)

    context = zmq.Context.instance()
    video = context.socket(zmq.PUB)
    video.connect(f"tcp://{host}:{chat_video_port}")
    commands = context.socket(zmq.PUSH)
    commands.connect(f"tcp://{host}:{command_port}")
    relayed = context.socket(zmq.SUB)
    relayed.setsockopt(zmq.SUBSCRIBE, b"")
    relayed.setsockopt(zmq.RCVTIMEO, 1000)
    relayed.connect(f"tcp://{host}:{command_port + 1}")

    # PUB/SUB joins are asynchronous
    time.sleep(0.5)

    images_read = 0
    empty_polls = 0
    commands_seen = 0
    http_commands_ok = 0

    try:
        with httpx.Client(base_url=http_url, timeout=5.0) as client:
            for i in range(frames):
                payload = f"frame-{i}".encode("ascii")
                video.send_multipart([b"smoke", b"640", b"480", payload])
                commands.send_multipart([b"robot", f"cmd-{i}".encode("ascii")])
                time.sleep(interval)

                response = client.get("/image")
                if response.headers.get("content-type", "").startswith("application/json"):
                    empty_polls += 1
                else:
                    images_read += 1

                response = client.post("/simplecommand", json={"sequence": i})
                if response.status_code == 200 and response.json().get("success"):
                    http_commands_ok += 1

                # relayed bus command and the HTTP command
                for _ in range(2):
                    try:
                        relayed.recv_multipart()
                        commands_seen += 1
                    except zmq.Again:
                        break
    except KeyboardInterrupt:
        logger.info("Test interrupted by user")
    finally:
        video.close(linger=0)
        commands.close(linger=0)
        relayed.close(linger=0)

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Frames sent: {frames}")
    logger.info(f"Images read: {images_read}")
    logger.info(f"Empty polls: {empty_polls}")
    logger.info(f"HTTP commands accepted: {http_commands_ok}")
    logger.info(f"Commands seen on publisher: {commands_seen}")
    logger.info("=" * 60)

    if images_read > 0 and commands_seen > 0:
        logger.info("TEST PASSED - frames and commands crossed the bridge")
    else:
        logger.error("TEST FAILED - nothing crossed the bridge")

    return {
        "images_read": images_read,
        "empty_polls": empty_polls,
        "http_commands_ok": http_commands_ok,
        "commands_seen": commands_seen,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Smoke test for a running ZMQ REST bridge"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Host the bridge sockets are bound on",
    )
    parser.add_argument(
        "--http-url",
        type=str,
        default=f"http://localhost:{os.environ.get('PORT', '5000')}",
        help="Base URL of the bridge HTTP server",
    )
    parser.add_argument(
        "--chat-video-port",
        type=int,
        default=int(os.environ.get("CHATVIDEOPORT", 4030)),
        help="Chat video port (default: 4030)",
    )
    parser.add_argument(
        "--command-port",
        type=int,
        default=int(os.environ.get("COMMANDPORT", 4010)),
        help="Command port (default: 4010)",
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=10,
        help="Number of frames to send (default: 10)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=0.2,
        help="Seconds between frames (default: 0.2)",
    )

    args = parser.parse_args()

    result = run_test(
        host=args.host,
        http_url=args.http_url.rstrip("/"),
        chat_video_port=args.chat_video_port,
        command_port=args.command_port,
        frames=args.frames,
        interval=args.interval,
    )

    sys.exit(0 if result["images_read"] > 0 and result["commands_seen"] > 0 else 1)


if __name__ == "__main__":
    main()
