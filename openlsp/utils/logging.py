"""
Structured logging for OpenLSP, built on structlog.

Every event carries the purchase attempt's correlation id and the app
version; macaroons, preimages and other secrets are redacted before any
renderer sees them. Output is colored console lines for operators, JSON for
log shippers, or key=value lines otherwise.
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, cast

import structlog
from structlog.types import EventDict, Processor

REDACTED = "***REDACTED***"

SENSITIVE_KEYS = frozenset(
    {
        "macaroon",
        "macaroon_hex",
        "preimage",
        "payment_preimage",
        "tls_cert",
        "secret",
        "token",
        "password",
    }
)

# One id per purchase attempt, visible across awaits in the same task
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context, generating one if needed."""
    correlation_id = correlation_id or str(uuid.uuid4())
    _correlation_id_var.set(correlation_id)
    return correlation_id


def get_correlation_id() -> str | None:
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("correlation_id", get_correlation_id())
    return event_dict


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: REDACTED if k in SENSITIVE_KEYS else _redact(v) for k, v in value.items()}
    return value


def filter_sensitive_data(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace secret values, including inside nested dicts, with a marker."""
    for key, value in event_dict.items():
        event_dict[key] = REDACTED if key in SENSITIVE_KEYS else _redact(value)
    return event_dict


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    from openlsp import __version__

    event_dict["app"] = "openlsp"
    event_dict["version"] = __version__
    return event_dict


def _renderer(json_logs: bool, dev_mode: bool) -> list[Processor]:
    if json_logs:
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    if dev_mode:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"])]


def _formatter(
    shared_processors: list[Processor], json_logs: bool, dev_mode: bool
) -> structlog.stdlib.ProcessorFormatter:
    """Render structlog events and plain stdlib records alike."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_renderer(json_logs, dev_mode),
        ],
    )


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    dev_mode: bool = True,
    log_file: Path | None = None,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Safe to call more than once; the last call wins.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_logs: Render JSON lines (takes precedence over ``dev_mode``)
        dev_mode: Render colored console lines
        log_file: Also write to this file, rotated at 10 MB. The file never
            gets colors: it holds JSON lines or key=value lines.
    """
    shared_processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        add_app_context,
        filter_sensitive_data,
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Rendering happens per handler, so each output gets its own format
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(shared_processors, json_logs, dev_mode))
    handlers: list[logging.Handler] = [console]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=str(log_file), maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(_formatter(shared_processors, json_logs, dev_mode=False))
        handlers.append(file_handler)

    logging.basicConfig(
        handlers=handlers,
        level=getattr(logging, log_level.upper()),
        force=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger.

    Usage:
        logger = get_logger(__name__)
        logger.info("payment_sent", order_id="abc", rail="lightning")
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


class LogPerformance:
    """
    Log the duration of a block as ``<operation>_completed`` or ``<operation>_failed``.

    Usage:
        with LogPerformance("forwarding_report", logger):
            ...
    """

    def __init__(self, operation: str, logger: structlog.stdlib.BoundLogger):
        self.operation = operation
        self.logger = logger
        self.start_time = 0.0

    def __enter__(self) -> "LogPerformance":
        self.start_time = time.perf_counter()
        self.logger.debug(f"{self.operation}_started")
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)

        if exc_type is None:
            self.logger.info(
                f"{self.operation}_completed", duration_ms=duration_ms, operation=self.operation
            )
            return

        self.logger.error(
            f"{self.operation}_failed",
            duration_ms=duration_ms,
            operation=self.operation,
            error=str(exc_val),
            error_type=exc_type.__name__,
        )


configure_logging()
