"""Tests for structured logging helpers."""

import logging
from unittest.mock import MagicMock

import pytest

from openlsp import __version__
from openlsp.utils.logging import (
    LogPerformance,
    add_app_context,
    add_correlation_id,
    clear_correlation_id,
    configure_logging,
    filter_sensitive_data,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)


class TestCorrelationId:
    def test_generated_when_not_given(self):
        correlation_id = set_correlation_id()

        assert get_correlation_id() == correlation_id
        assert len(correlation_id) == 36

    def test_explicit_and_cleared(self):
        set_correlation_id("purchase-1")
        assert add_correlation_id(None, "info", {"event": "x"})["correlation_id"] == "purchase-1"

        clear_correlation_id()
        assert get_correlation_id() is None

    def test_existing_value_is_kept(self):
        set_correlation_id("purchase-1")

        event = add_correlation_id(None, "info", {"correlation_id": "other"})

        assert event["correlation_id"] == "other"


class TestProcessors:
    def test_secrets_are_redacted(self):
        event = filter_sensitive_data(
            None,
            "info",
            {
                "event": "payment_sent",
                "preimage": "ab" * 32,
                "macaroon": "0201",
                "rail": "lightning",
            },
        )

        assert event["preimage"] == "***REDACTED***"
        assert event["macaroon"] == "***REDACTED***"
        assert event["rail"] == "lightning"

    def test_nested_secrets_are_redacted(self):
        event = filter_sensitive_data(
            None, "info", {"event": "lnd_request", "headers": {"macaroon": "0201", "accept": "json"}}
        )

        assert event["headers"] == {"macaroon": "***REDACTED***", "accept": "json"}

    def test_app_context(self):
        event = add_app_context(None, "info", {})

        assert event == {"app": "openlsp", "version": __version__}


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_logging(self):
        yield
        root = logging.getLogger()
        for handler in list(root.handlers):
            if isinstance(handler, logging.FileHandler):
                root.removeHandler(handler)
                handler.close()
        configure_logging()

    def test_log_level(self):
        configure_logging(log_level="WARNING")

        assert logging.getLogger().level == logging.WARNING

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "openlsp.log"

        configure_logging(json_logs=True, log_file=log_file)
        logging.getLogger("openlsp.test").warning("file_handler_check")

        assert "file_handler_check" in log_file.read_text()

    def test_log_file_has_no_colors_in_dev_mode(self, tmp_path):
        log_file = tmp_path / "openlsp.log"

        configure_logging(dev_mode=True, log_file=log_file)
        get_logger("openlsp.test").warning("dev_file_check", order_id="order-1")
        logging.getLogger("openlsp.test").warning("stdlib_file_check")

        content = log_file.read_text()
        assert "\x1b[" not in content
        assert "event='dev_file_check'" in content
        assert "order_id='order-1'" in content
        assert "stdlib_file_check" in content


class TestLogPerformance:
    def test_success(self):
        logger = MagicMock()

        with LogPerformance("forwarding_report", logger):
            pass

        logger.debug.assert_called_once_with("forwarding_report_started")
        (event,) = logger.info.call_args.args
        assert event == "forwarding_report_completed"
        assert logger.info.call_args.kwargs["operation"] == "forwarding_report"

    def test_failure(self):
        logger = MagicMock()

        with pytest.raises(RuntimeError):
            with LogPerformance("forwarding_report", logger):
                raise RuntimeError("node offline")

        assert logger.error.call_args.args == ("forwarding_report_failed",)
        assert logger.error.call_args.kwargs["error_type"] == "RuntimeError"
