"""Tests for the server command-line entry point."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from flightsurety.server.cli import build_parser, main, settings_from_args
from flightsurety.server.config import ServerSettings


@pytest.fixture
def base(clean_env):
    return ServerSettings()


class TestBuildParser:
    def test_defaults_are_unset(self):
        args = build_parser().parse_args([])

        assert args.host is None
        assert args.port is None
        assert args.oracles is None
        assert args.no_responder is False
        assert args.json_logs is False

    def test_short_options(self):
        args = build_parser().parse_args(["-p", "8080", "-n", "5"])
        assert (args.port, args.oracles) == (8080, 5)

    def test_rejects_unknown_log_level(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "TRACE"])


class TestSettingsFromArgs:
    def test_no_overrides_keeps_environment(self, base):
        settings = settings_from_args(build_parser().parse_args([]), base)
        assert settings == base

    def test_overrides(self, base):
        args = build_parser().parse_args(
            ["--host", "0.0.0.0", "--port", "9000", "--oracles", "7", "--no-responder", "--log-level", "DEBUG"]
        )

        settings = settings_from_args(args, base)

        assert settings.host == "0.0.0.0"
        assert settings.port == 9000
        assert settings.oracle_count == 7
        assert settings.responder_enabled is False
        assert settings.log_level == "DEBUG"
        assert base.port == 3000

    def test_rejects_zero_oracles(self, base):
        with pytest.raises(SystemExit):
            settings_from_args(build_parser().parse_args(["--oracles", "0"]), base)


class TestMain:
    def test_runs_server_with_settings(self, clean_env):
        with patch("flightsurety.server.app.run") as mock_run, patch(
            "flightsurety.server.cli.configure_logging"
        ) as mock_logging:
            assert main(["--port", "4000", "--json-logs"]) == 0

        settings = mock_run.call_args.args[0]
        assert settings.port == 4000
        mock_logging.assert_called_once_with(level="INFO", json_format=True)
