"""Tests for the CLI entry point."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from nexusevent.__main__ import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_SUCCESS,
    build_message,
    configure_logging,
    create_parser,
    main,
    run_config_check,
    run_delivery,
    validate_config,
)
from nexusevent.errors import DeliveryError
from nexusevent.models import EventMessage, Platform
from nexusevent.registry import NexusEvent

WEBHOOK_URL = "https://discord.com/api/webhooks/123456789012345678/AbCdEf-123_token"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without NexusEvent environment configuration."""
    for var in (
        "DISCORD_WEBHOOK_URL",
        "NEXUSEVENT_TIMEOUT_SECONDS",
        "NEXUSEVENT_MAX_RETRIES",
        "NEXUSEVENT_INITIAL_BACKOFF_SECONDS",
        "NEXUSEVENT_MAX_BACKOFF_SECONDS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


def make_sender(error: Exception | None = None) -> MagicMock:
    sender = MagicMock()
    sender.platform = Platform.DISCORD
    sender.send = AsyncMock(side_effect=error)
    sender.validate_config = MagicMock(return_value=True)
    return sender


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_parser_has_version(self):
        """Parser should have version flag."""
        parser = create_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_parser_default_values(self):
        """Parser should have correct defaults."""
        args = create_parser().parse_args([])
        assert args.config_check is False
        assert args.log_level is None
        assert args.title is None
        assert args.sender is None
        assert args.fail_fast is False

    def test_parser_message_options(self):
        args = create_parser().parse_args(
            [
                "--title",
                "Build failed",
                "--content",
                "main is red",
                "--url",
                "https://ci.example.com/1",
                "--author",
                "ci",
                "--color",
                "0xff0000",
            ]
        )
        assert args.title == "Build failed"
        assert args.content == "main is red"
        assert args.url == "https://ci.example.com/1"
        assert args.author == "ci"
        assert args.color == 0xFF0000

    def test_parser_hash_color(self):
        args = create_parser().parse_args(["--color", "#33ccff"])
        assert args.color == 0x33CCFF

    def test_parser_invalid_color(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--color", "blue"])
        assert exc_info.value.code != 0
        assert "invalid color" in capsys.readouterr().err

    def test_build_message(self):
        args = create_parser().parse_args(["--title", "Hi", "--author", "ops"])
        message = build_message(args)
        assert message.title == "Hi"
        assert message.author == "ops"
        assert message.timestamp is not None


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_logging_info(self):
        configure_logging("INFO")
        assert logging.getLogger().level == logging.INFO

    def test_configure_logging_debug(self):
        configure_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG


class TestValidateConfig:
    """Tests for configuration validation."""

    def test_validate_config_success(self):
        assert validate_config() is not None

    def test_validate_config_failure(self, monkeypatch, capsys):
        monkeypatch.setenv("NEXUSEVENT_MAX_RETRIES", "not-a-number")

        assert validate_config() is None
        assert "Configuration validation failed" in capsys.readouterr().err


class TestRunConfigCheck:
    """Tests for config check mode."""

    def test_no_senders(self, capsys):
        settings = validate_config()
        assert settings is not None

        result = run_config_check(settings, NexusEvent())

        assert result == EXIT_CONFIG_ERROR
        assert "No senders configured" in capsys.readouterr().out

    def test_valid_sender(self, monkeypatch, capsys):
        monkeypatch.setenv("DISCORD_WEBHOOK_URL", WEBHOOK_URL)
        settings = validate_config()
        assert settings is not None

        result = run_config_check(settings, NexusEvent.from_settings(settings))

        assert result == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "discord: valid" in out
        assert "AbCdEf" not in out

    def test_invalid_sender(self, monkeypatch, capsys):
        monkeypatch.setenv(
            "DISCORD_WEBHOOK_URL", "https://discord.com/api/webhooks/YOUR_WEBHOOK_URL"
        )
        settings = validate_config()
        assert settings is not None

        result = run_config_check(settings, NexusEvent.from_settings(settings))

        assert result == EXIT_CONFIG_ERROR
        assert "discord: INVALID" in capsys.readouterr().out


class TestRunDelivery:
    """Tests for message delivery from the CLI."""

    @pytest.mark.asyncio
    async def test_broadcast_success(self, capsys):
        nexus = NexusEvent()
        sender = make_sender()
        nexus.add_sender("discord", sender)

        result = await run_delivery(nexus, EventMessage(title="Hi"))

        assert result == EXIT_SUCCESS
        assert "1/1 succeeded" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_broadcast_partial_failure(self, capsys):
        nexus = NexusEvent()
        nexus.add_sender("ok", make_sender())
        nexus.add_sender("broken", make_sender(DeliveryError("server error")))

        result = await run_delivery(nexus, EventMessage(title="Hi"))

        assert result == EXIT_ERROR
        captured = capsys.readouterr()
        assert "1/2 succeeded" in captured.out
        assert "broken" in captured.err

    @pytest.mark.asyncio
    async def test_single_sender(self, capsys):
        nexus = NexusEvent()
        sender = make_sender()
        nexus.add_sender("discord", sender)

        result = await run_delivery(nexus, EventMessage(title="Hi"), sender_name="discord")

        assert result == EXIT_SUCCESS
        sender.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_sender(self, capsys):
        result = await run_delivery(NexusEvent(), EventMessage(title="Hi"), sender_name="nope")

        assert result == EXIT_CONFIG_ERROR
        assert "nope" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_fail_fast_failure(self, capsys):
        nexus = NexusEvent()
        nexus.add_sender("broken", make_sender(DeliveryError("auth failed")))

        result = await run_delivery(nexus, EventMessage(title="Hi"), fail_fast=True)

        assert result == EXIT_ERROR
        assert "auth failed" in capsys.readouterr().err


class TestMain:
    """Tests for main entry point."""

    def test_main_config_check_without_senders(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config-check"])

        assert exc_info.value.code == EXIT_CONFIG_ERROR

    def test_main_config_check_with_sender(self, monkeypatch):
        monkeypatch.setenv("DISCORD_WEBHOOK_URL", WEBHOOK_URL)

        with pytest.raises(SystemExit) as exc_info:
            main(["--config-check"])

        assert exc_info.value.code == EXIT_SUCCESS

    def test_main_with_invalid_config(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "TRACE")

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == EXIT_CONFIG_ERROR

    def test_main_requires_title(self, monkeypatch, capsys):
        monkeypatch.setenv("DISCORD_WEBHOOK_URL", WEBHOOK_URL)

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2
        assert "--title" in capsys.readouterr().err

    def test_main_without_senders(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--title", "Hi"])

        assert exc_info.value.code == EXIT_CONFIG_ERROR

    @patch("nexusevent.__main__.run_delivery", new_callable=MagicMock)
    @patch("nexusevent.__main__.asyncio.run")
    def test_main_runs_delivery(self, mock_asyncio_run, mock_run_delivery, monkeypatch):
        monkeypatch.setenv("DISCORD_WEBHOOK_URL", WEBHOOK_URL)
        mock_asyncio_run.return_value = EXIT_SUCCESS

        with pytest.raises(SystemExit) as exc_info:
            main(["--title", "Hi", "--sender", "discord"])

        assert exc_info.value.code == EXIT_SUCCESS
        mock_asyncio_run.assert_called_once()
        assert mock_run_delivery.call_args.kwargs["sender_name"] == "discord"


class TestIntegration:
    """Integration tests for CLI invocation."""

    def test_cli_help_option(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-h"])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "nexusevent" in out
        assert "--config-check" in out
        assert "--title" in out
        assert "--fail-fast" in out

    def test_cli_version_option(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "0.1.1" in capsys.readouterr().out
