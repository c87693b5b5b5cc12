"""
Configuration Tests
===================
"""

import pytest
from pydantic import ValidationError

from zmq_rest_bridge.config import Settings, load_config
from zmq_rest_bridge.models.channel import (
    ChannelRole,
    SocketMode,
    command_out_binding,
    inbound_bindings,
)
from zmq_rest_bridge.models.command import CommandHeader


ENV_VARS = [
    "CHATVIDEOPORT",
    "VIDEOPORT",
    "COMMANDPORT",
    "EVENTPORT",
    "PORT",
    "BRIDGE_HOST",
    "BRIDGE_BIND_TIMEOUT",
    "BRIDGE_EVENT_ENABLED",
    "BRIDGE_VIDEO_RELAY",
    "BRIDGE_RAW_VIDEO_IMAGE",
    "BRIDGE_CONFIG",
    "BRIDGE_LOG_LEVEL",
    "BRIDGE_LOG_FORMAT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def missing_config(tmp_path):
    return str(tmp_path / "missing.yaml")


class TestDefaults:
    """Tests for default values."""

    def test_default_ports(self, clean_env, missing_config):
        settings = load_config(missing_config)

        assert settings.channels.raw_video.port == 4000
        assert settings.channels.command.port == 4010
        assert settings.channels.command_publish_port == 4011
        assert settings.channels.event.port == 4020
        assert settings.channels.chat_video.port == 4030
        assert settings.server.port == 5000

    def test_event_channel_disabled_by_default(self, settings):
        roles = [b.role for b in inbound_bindings(settings)]
        assert roles == [ChannelRole.CHAT_VIDEO, ChannelRole.RAW_VIDEO, ChannelRole.COMMAND_IN]

    def test_envelope_defaults_match_header(self, settings):
        assert CommandHeader.from_config(settings.envelope) == CommandHeader()

    def test_invalid_port_rejected(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({"server": {"port": 70000}})


class TestEnvironmentOverrides:
    """Tests for environment variable overrides."""

    def test_port_overrides(self, clean_env, missing_config):
        clean_env.setenv("VIDEOPORT", "6000")
        clean_env.setenv("COMMANDPORT", "6010")
        clean_env.setenv("CHATVIDEOPORT", "6030")
        clean_env.setenv("PORT", "8080")

        settings = load_config(missing_config)

        assert settings.channels.raw_video.port == 6000
        assert settings.channels.command.port == 6010
        assert settings.channels.command_publish_port == 6011
        assert settings.channels.chat_video.port == 6030
        assert settings.server.port == 8080

    def test_event_channel_enabled_from_env(self, clean_env, missing_config):
        clean_env.setenv("BRIDGE_EVENT_ENABLED", "true")
        clean_env.setenv("EVENTPORT", "6020")

        settings = load_config(missing_config)

        assert settings.channels.event.enabled is True
        assert settings.channels.event.port == 6020

    def test_raw_video_image_flag_from_env(self, clean_env, missing_config):
        assert load_config(missing_config).channels.raw_video_updates_image is False

        clean_env.setenv("BRIDGE_RAW_VIDEO_IMAGE", "yes")

        assert load_config(missing_config).channels.raw_video_updates_image is True

    def test_non_numeric_port_fails(self, clean_env, missing_config):
        clean_env.setenv("VIDEOPORT", "four-thousand")
        with pytest.raises(ValueError):
            load_config(missing_config)


class TestYamlConfig:
    """Tests for config.yaml loading."""

    def test_partial_channel_keeps_default_port(self, clean_env, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "channels:\n"
            "  event:\n"
            "    enabled: true\n"
            "  command_publish: 4999\n"
            "envelope:\n"
            "  robot_id: Rover\n"
        )

        settings = load_config(str(path))

        assert settings.channels.event.enabled is True
        assert settings.channels.event.port == 4020
        assert settings.channels.command_publish_port == 4999
        assert settings.envelope.robot_id == "Rover"

    def test_env_beats_yaml(self, clean_env, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("channels:\n  command:\n    port: 7010\n")
        clean_env.setenv("COMMANDPORT", "8010")

        assert load_config(str(path)).channels.command.port == 8010

    def test_config_path_from_env(self, clean_env, tmp_path):
        path = tmp_path / "bridge.yaml"
        path.write_text("server:\n  port: 5100\n")
        clean_env.setenv("BRIDGE_CONFIG", str(path))

        assert load_config().server.port == 5100

    def test_working_directory_config(self, clean_env, tmp_path):
        (tmp_path / "config.yml").write_text("channels:\n  chat_video:\n    port: 4130\n")
        clean_env.chdir(tmp_path)

        assert load_config().channels.chat_video.port == 4130

    def test_no_config_outside_working_directory(self, clean_env, tmp_path):
        clean_env.chdir(tmp_path)

        settings = load_config()

        assert settings.server.port == 5000
        assert settings.channels.chat_video.port == 4030

    def test_missing_env_config_falls_back_to_defaults(self, clean_env, tmp_path):
        clean_env.setenv("BRIDGE_CONFIG", str(tmp_path / "absent.yaml"))
        clean_env.chdir(tmp_path)

        assert load_config().server.port == 5000


class TestBindings:
    def test_command_out_binding(self, settings):
        binding = command_out_binding(settings)
        assert binding.role is ChannelRole.COMMAND_OUT
        assert binding.socket_mode is SocketMode.PUBLISH
        assert binding.endpoint == "tcp://*:4011"
