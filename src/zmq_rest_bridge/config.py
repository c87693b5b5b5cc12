"""
ZMQ REST Bridge Configuration
=============================

This module handles configuration loading for the bridge.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. YAML file: $BRIDGE_CONFIG, else config.yaml or config.yml in the
       working directory
    3. Default values (lowest priority)

Environment Variable Mapping:
    CHATVIDEOPORT         -> channels.chat_video.port
    VIDEOPORT             -> channels.raw_video.port
    COMMANDPORT           -> channels.command.port
    EVENTPORT             -> channels.event.port
    PORT                  -> server.port
    BRIDGE_HOST           -> bus.host
    BRIDGE_BIND_TIMEOUT   -> bus.bind_timeout_seconds
    BRIDGE_EVENT_ENABLED  -> channels.event.enabled
    BRIDGE_VIDEO_RELAY    -> video_relay.enabled
    BRIDGE_RAW_VIDEO_IMAGE -> channels.raw_video_updates_image
    BRIDGE_LOG_LEVEL      -> logging.level
    BRIDGE_LOG_FORMAT     -> logging.format

Example:
    from zmq_rest_bridge.config import settings

    print(settings.channels.command.port)
    print(settings.channels.command_publish_port)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class BridgeInfoConfig(BaseModel):
    """Bridge identification configuration."""

    name: str = Field(default="zmq-rest-bridge", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class BusConfig(BaseModel):
    """ZeroMQ socket configuration shared by all channels."""

    host: str = Field(
        default="*",
        description="Interface inbound and outbound sockets bind to",
    )
    bind_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound on a single socket bind at start-up",
    )
    linger_ms: int = Field(
        default=0,
        ge=0,
        description="Socket linger on close, in milliseconds",
    )


class ChannelConfig(BaseModel):
    """A single inbound channel."""

    enabled: bool = Field(default=True, description="Bind this channel at start-up")
    port: int = Field(..., ge=1, le=65535, description="Port to bind")


class ChannelsConfig(BaseModel):
    """Inbound channels and the command publisher port."""

    chat_video: ChannelConfig = Field(
        default_factory=lambda: ChannelConfig(port=4030),
    )
    raw_video: ChannelConfig = Field(
        default_factory=lambda: ChannelConfig(port=4000),
    )
    command: ChannelConfig = Field(
        default_factory=lambda: ChannelConfig(port=4010),
    )
    event: ChannelConfig = Field(
        default_factory=lambda: ChannelConfig(enabled=False, port=4020),
    )
    command_publish: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        description="Command publisher port (defaults to command port + 1)",
    )
    raw_video_updates_image: bool = Field(
        default=False,
        description="Raw-video frames also replace the frame served by GET /image",
    )

    @property
    def command_publish_port(self) -> int:
        """Port the command publisher binds to."""
        if self.command_publish is not None:
            return self.command_publish
        return self.command.port + 1


class VideoRelayConfig(BaseModel):
    """Republishing of raw-video frames to other bus subscribers."""

    enabled: bool = Field(default=False, description="Republish raw-video frames")

    def raw_port(self, video_port: int) -> int:
        return video_port + 1

    def base64_port(self, video_port: int) -> int:
        return video_port + 2


class EnvelopeConfig(BaseModel):
    """Header values wrapped around simple commands."""

    id: int = Field(default=171, description="Message id")
    tid: int = Field(default=0, description="Transaction id")
    timestamp: int = Field(default=0, description="Header timestamp")
    robot_id: str = Field(default="Romo", description="Originating robot id")
    version: str = Field(default="0.1", description="Envelope protocol version")


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=5000, ge=1, le=65535, description="Bind port")
    image_media_type: str = Field(
        default="application/octet-stream",
        description="Content type of GET /image payloads",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the bridge.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    bridge: BridgeInfoConfig = Field(default_factory=BridgeInfoConfig)
    bus: BusConfig = Field(default_factory=BusConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    video_relay: VideoRelayConfig = Field(default_factory=VideoRelayConfig)
    envelope: EnvelopeConfig = Field(default_factory=EnvelopeConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to a YAML file. If None, uses $BRIDGE_CONFIG or
            config.yaml / config.yml in the working directory.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        config_path = os.environ.get("BRIDGE_CONFIG")
    if config_path is None:
        for path in (Path("config.yaml"), Path("config.yml")):
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    elif config_path:
        logger.warning(f"Config file {config_path} not found, using defaults and environment variables")
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    channels = {
        "CHATVIDEOPORT": "chat_video",
        "VIDEOPORT": "raw_video",
        "COMMANDPORT": "command",
        "EVENTPORT": "event",
    }
    for env_name, channel in channels.items():
        if env_port := os.environ.get(env_name):
            config_data.setdefault("channels", {}).setdefault(channel, {})["port"] = int(env_port)

    # Defaults are lambdas on the model, so a partial override needs the port too
    defaults = ChannelsConfig()
    for channel, values in config_data.get("channels", {}).items():
        default = getattr(defaults, channel, None)
        if isinstance(values, dict) and isinstance(default, ChannelConfig):
            values.setdefault("port", default.port)

    if env_event := os.environ.get("BRIDGE_EVENT_ENABLED"):
        event = config_data.setdefault("channels", {}).setdefault("event", {})
        event["enabled"] = _env_flag(env_event)
        event.setdefault("port", defaults.event.port)

    if env_relay := os.environ.get("BRIDGE_VIDEO_RELAY"):
        config_data.setdefault("video_relay", {})["enabled"] = _env_flag(env_relay)
    if env_raw_image := os.environ.get("BRIDGE_RAW_VIDEO_IMAGE"):
        config_data.setdefault("channels", {})["raw_video_updates_image"] = _env_flag(env_raw_image)

    # Bus settings
    if env_host := os.environ.get("BRIDGE_HOST"):
        config_data.setdefault("bus", {})["host"] = env_host
    if env_timeout := os.environ.get("BRIDGE_BIND_TIMEOUT"):
        config_data.setdefault("bus", {})["bind_timeout_seconds"] = float(env_timeout)

    # HTTP server
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("BRIDGE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_fmt := os.environ.get("BRIDGE_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_fmt


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

settings = load_config()
setup_logging(settings)
