"""
GeoHunt logging subsystem.

Purpose
-------
Structured, async-safe logging for the progress engine:

- JSON logs in production, colored human-readable text in development.
- ContextVar-based propagation of player/treasure/operation context.
- Correlation ids for tracing a single unlock through service, store and
  event handlers.
- QueueHandler + QueueListener so handler I/O never blocks the event loop.

Responsibilities
----------------
- `setup_logging()` / `shutdown_logging()` for the global logging stack.
- `get_logger(name)` for modules.
- `LogContext` (sync + async context manager) and `set_log_context()` /
  `clear_log_context()` helpers.
- Enrich every record with `player_id`, `treasure_id`, `operation`,
  `correlation_id` and `component`.

Extra fields passed via `logger.info("msg", extra={...})` are merged into the
JSON payload.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Dict, Optional

_log_context: ContextVar[Dict[str, Any]] = ContextVar("geohunt_log_context", default={})

_CONTEXT_FIELDS = ("player_id", "treasure_id", "operation", "correlation_id", "component")


@dataclass(frozen=True)
class LoggerConfig:
    """Formatting and queue settings for the logging subsystem."""

    CONSOLE_FORMAT: str = (
        "%(asctime)s | %(levelname)-8s | %(name)-32s "
        "| [%(player_id)s:%(correlation_id)s] | %(message)s"
    )
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    QUEUE_MAX_SIZE: int = 10_000

    @property
    def log_level(self) -> int:
        from src.core.config.config import Config

        return getattr(logging, str(Config.LOG_LEVEL).upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        from src.core.config.config import Config

        return bool(Config.LOG_JSON)

    @property
    def environment(self) -> str:
        from src.core.config.config import Config

        return str(Config.ENVIRONMENT)

    @property
    def use_colors(self) -> bool:
        return not self.use_json and sys.stdout.isatty()


LOGGER_CONFIG = LoggerConfig()


@dataclass
class LoggingMetrics:
    records_enqueued: int = 0
    records_dropped: int = 0


_logging_metrics = LoggingMetrics()
_queue_listener: Optional[QueueListener] = None


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Copies the current LogContext onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context.get()
        for name in _CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, context.get(name, "N/A"))
        if getattr(record, "component", "N/A") == "N/A":
            record.component = record.name.rsplit(".", 1)[-1]
        return True


class ColoredFormatter(logging.Formatter):
    COLORS: Dict[str, str] = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        color = self.COLORS.get(original)
        if color:
            record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class JSONFormatter(logging.Formatter):
    """One JSON object per line; `extra` fields land under "extra"."""

    STANDARD_ATTRS = frozenset(
        {
            "name", "msg", "args", "levelname", "levelno", "pathname",
            "filename", "module", "exc_info", "exc_text", "stack_info",
            "lineno", "funcName", "created", "msecs", "relativeCreated",
            "thread", "threadName", "processName", "process", "taskName",
            "message", "asctime",
        }
    )

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value not in (None, "N/A"):
                payload[name] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self.STANDARD_ATTRS
            and key not in _CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=str)


class _BoundedQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:
        _logging_metrics.records_enqueued += 1
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _logging_metrics.records_dropped += 1


# ============================================================================
# Global setup
# ============================================================================


def _build_console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LOGGER_CONFIG.log_level)
    if LOGGER_CONFIG.use_json:
        handler.setFormatter(JSONFormatter())
    elif LOGGER_CONFIG.use_colors:
        handler.setFormatter(
            ColoredFormatter(fmt=LOGGER_CONFIG.CONSOLE_FORMAT, datefmt=LOGGER_CONFIG.DATE_FORMAT)
        )
    else:
        handler.setFormatter(
            logging.Formatter(fmt=LOGGER_CONFIG.CONSOLE_FORMAT, datefmt=LOGGER_CONFIG.DATE_FORMAT)
        )
    return handler


def setup_logging() -> None:
    """Install the queue-backed handler on the root logger (idempotent)."""
    global _queue_listener, _logging_metrics

    root = logging.getLogger()
    if getattr(root, "_geohunt_logging_initialized", False):
        return

    _logging_metrics = LoggingMetrics()
    root.setLevel(LOGGER_CONFIG.log_level)

    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(LOGGER_CONFIG.QUEUE_MAX_SIZE)
    console = _build_console_handler()
    _queue_listener = QueueListener(log_queue, console, respect_handler_level=True)
    _queue_listener.start()

    queue_handler = _BoundedQueueHandler(log_queue)
    queue_handler.addFilter(ContextFilter())
    root.addHandler(queue_handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    setattr(root, "_geohunt_logging_initialized", True)
    setattr(root, "_geohunt_queue_handler", queue_handler)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "log_level": logging.getLevelName(LOGGER_CONFIG.log_level),
            "json": LOGGER_CONFIG.use_json,
            "environment": LOGGER_CONFIG.environment,
        },
    )


def shutdown_logging() -> None:
    """Flush the queue and detach the handler installed by `setup_logging`."""
    global _queue_listener

    root = logging.getLogger()
    if not getattr(root, "_geohunt_logging_initialized", False):
        return

    if _queue_listener is not None:
        _queue_listener.stop()
        _queue_listener = None

    handler = getattr(root, "_geohunt_queue_handler", None)
    if handler is not None:
        root.removeHandler(handler)
        handler.close()

    setattr(root, "_geohunt_logging_initialized", False)


def get_logging_metrics() -> LoggingMetrics:
    return _logging_metrics


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Scope log context to a block of code.

    Example
    -------
    >>> async with LogContext(player_id="p-1", operation="unlock_treasure"):
    ...     logger.info("Unlocking")
    """

    def __init__(
        self,
        player_id: Optional[str] = None,
        treasure_id: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        component: Optional[str] = None,
        **extra: Any,
    ) -> None:
        inherited = _log_context.get()
        self.context: Dict[str, Any] = {
            **inherited,
            "correlation_id": correlation_id
            or inherited.get("correlation_id")
            or self._generate_correlation_id(),
            **extra,
        }
        for key, value in (
            ("player_id", player_id),
            ("treasure_id", treasure_id),
            ("operation", operation),
            ("component", component),
        ):
            if value is not None:
                self.context[key] = str(value)
        self._token: Optional[Token[Dict[str, Any]]] = None

    @staticmethod
    def _generate_correlation_id() -> str:
        return uuid.uuid4().hex[:8]

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(**fields: Any) -> None:
    """Merge fields into the current context without a scope."""
    current = dict(_log_context.get())
    current.update({k: str(v) for k, v in fields.items() if v is not None})
    _log_context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})
