"""Tests for devchain.core.logging."""

from __future__ import annotations

import json

from devchain.core.logging import LogContext, configure_logging, get_logger


def _json_lines(text: str) -> list[dict]:
    return [json.loads(line) for line in text.splitlines() if line.startswith("{")]


class TestConfigureLogging:
    def test_json_output_on_stderr(self, capsys):
        configure_logging(level="INFO", json_format=True)
        get_logger("devchain.test").info("volume.created", volume="dev_ethsigner")

        captured = capsys.readouterr()
        assert captured.out == ""
        (event,) = _json_lines(captured.err)
        assert event["event"] == "volume.created"
        assert event["volume"] == "dev_ethsigner"
        assert event["level"] == "info"
        assert event["logger"] == "devchain.test"
        assert event["service"] == "devchain"
        assert "timestamp" in event

    def test_level_filters(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        logger = get_logger("devchain.test")
        logger.info("hidden")
        logger.warning("shown")

        events = [e["event"] for e in _json_lines(capsys.readouterr().err)]
        assert events == ["shown"]

    def test_without_timestamp(self, capsys):
        configure_logging(level="INFO", json_format=True, add_timestamp=False, service="ci")
        get_logger().info("x")

        (event,) = _json_lines(capsys.readouterr().err)
        assert "timestamp" not in event
        assert event["service"] == "ci"


class TestLogContext:
    def test_binds_and_unbinds(self, capsys):
        configure_logging(level="INFO", json_format=True)
        logger = get_logger("devchain.test")

        with LogContext(stack="dev"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = _json_lines(capsys.readouterr().err)
        assert inside["stack"] == "dev"
        assert "stack" not in outside


_import_time_logger = get_logger("devchain.test.import_time")


class TestModuleLevelLoggers:
    def test_logger_created_before_configure_follows_it(self, capsys):
        configure_logging(level="ERROR", json_format=True)
        _import_time_logger.info("quiet")
        _import_time_logger.error("loud", volume="dev_ethsigner")

        captured = capsys.readouterr()
        assert captured.out == ""
        (event,) = _json_lines(captured.err)
        assert event["event"] == "loud"
        assert event["logger"] == "devchain.test.import_time"

    def test_package_logger_never_writes_to_stdout(self, capsys):
        from devchain.deploy import compose

        configure_logging(level="INFO", json_format=True)
        compose.logger.info("compose.rendered")

        captured = capsys.readouterr()
        assert captured.out == ""
        (event,) = _json_lines(captured.err)
        assert event["event"] == "compose.rendered"
