"""Structured logging: swappable formatter via config.

Architecture:
    LogFormatter - HOW records are structured (structlog, stdlib)

    setup_logging(config) asks the formatter for a logging.Formatter,
    attaches it to a stderr handler, and installs that handler on the root
    logger. Records from plain logging.getLogger() loggers get the same
    structured output because both formatters bridge stdlib.

Swapping:
    ALERTSHAPE_LOG_FORMATTER=structlog   (default)
    ALERTSHAPE_LOG_FORMATTER=stdlib

    Or register your own:
        from alertshape.observability.logging import register_formatter
        register_formatter("mine", MyFormatter)
"""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import structlog

if TYPE_CHECKING:
    from alertshape.observability.config import AlertshapeConfig


@runtime_checkable
class LogFormatter(Protocol):
    """Strategy: how log records are structured.

    setup() configures the formatting pipeline and returns a
    logging.Formatter that the handler will use.

    get_logger() returns a logger that accepts logger.info("event", key=value).
    """

    def setup(self, config: AlertshapeConfig) -> logging.Formatter: ...

    def get_logger(self, name: str, **kwargs: Any) -> Any: ...


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def _merge_structured(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Lift kwargs stored by _StructuredStdlibLogger into the event dict."""
    record = event_dict.get("_record")
    structured = getattr(record, "_structured", None)
    if structured:
        for key, value in structured.items():
            event_dict.setdefault(key, value)
    return event_dict


class StructlogFormatter:
    """structlog processor pipeline + stdlib bridge."""

    def setup(self, config: AlertshapeConfig) -> logging.Formatter:
        shared_processors: list = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ]

        if config.log_format == "json":
            renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=False)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *shared_processors,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        return structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[_merge_structured, *shared_processors],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        return structlog.get_logger(name, **kwargs)


class StdlibFormatter:
    """Pure stdlib logging; JSON or a one-line console format."""

    def setup(self, config: AlertshapeConfig) -> logging.Formatter:
        if config.log_format == "json":
            return _StdlibJsonFormatter()
        return _StdlibConsoleFormatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        return _StructuredStdlibLogger(logging.getLogger(name))


class _StdlibJsonFormatter(logging.Formatter):
    """JSON formatter for stdlib logging."""

    def format(self, record: logging.LogRecord) -> str:
        d: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        if hasattr(record, "_structured"):
            d.update(record._structured)  # type: ignore[attr-defined]
        if record.exc_info and record.exc_info[1]:
            d["exception"] = self.formatException(record.exc_info)
        return json.dumps(d, default=str)


class _StdlibConsoleFormatter(logging.Formatter):
    """Console formatter that appends structured kwargs as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        structured = getattr(record, "_structured", None)
        if structured:
            line += " " + " ".join(f"{k}={v!r}" for k, v in structured.items())
        return line


class _StructuredStdlibLogger:
    """Wrapper that gives stdlib loggers a structlog-like kwargs API.

    Stdlib loggers don't accept arbitrary kwargs, so this wrapper stores
    them on the LogRecord for the formatter.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(self, level: int, event: str, **kwargs: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        exc_info = kwargs.pop("exc_info", None)
        if exc_info is True:
            exc_info = sys.exc_info()
        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "(unknown)",
            0,
            event,
            (),
            exc_info or None,
        )
        record._structured = kwargs  # type: ignore[attr-defined]
        self._logger.handle(record)

    def debug(self, event: str, **kw: Any) -> None:
        self._log(logging.DEBUG, event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._log(logging.INFO, event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._log(logging.WARNING, event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._log(logging.ERROR, event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        kw.setdefault("exc_info", True)
        self._log(logging.ERROR, event, **kw)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_FORMATTERS: dict[str, type] = {
    "structlog": StructlogFormatter,
    "stdlib": StdlibFormatter,
}


def register_formatter(name: str, cls: type) -> None:
    """Register a custom log formatter. Call before setup_logging()."""
    _FORMATTERS[name] = cls


# ---------------------------------------------------------------------------
# Module state
# ---------------------------------------------------------------------------

_active_formatter: LogFormatter | None = None

_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logging(config: AlertshapeConfig) -> None:
    """Build the configured formatter and wire a stderr handler to the root logger."""
    global _active_formatter

    formatter_cls = _FORMATTERS.get(config.log_formatter)
    if formatter_cls is None:
        raise ValueError(
            f"Unknown log formatter: {config.log_formatter!r}. "
            f"Available: {list(_FORMATTERS)}. "
            f"Register custom formatters with register_formatter()."
        )
    level = _LOG_LEVELS.get(config.log_level.upper())
    if level is None:
        raise ValueError(
            f"Unknown log level: {config.log_level!r}. Must be one of {list(_LOG_LEVELS)}"
        )

    formatter = formatter_cls()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter.setup(config))

    # Only replace our own handler, preserve external ones (pytest caplog etc.)
    handler._alertshape_managed = True  # type: ignore[attr-defined]
    root_logger = logging.getLogger()
    root_logger.handlers = [
        h for h in root_logger.handlers
        if not getattr(h, "_alertshape_managed", False)
    ]
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    _active_formatter = formatter


def get_logger(name: str = "", **kwargs: Any) -> Any:
    """Get a logger from the active formatter.

    Falls back to a _StructuredStdlibLogger wrapper before setup_logging()
    is called, so structured kwargs work even pre-configuration.
    """
    if _active_formatter is not None:
        return _active_formatter.get_logger(name, **kwargs)
    return _StructuredStdlibLogger(logging.getLogger(name))


def reset_logging() -> None:
    """Remove the managed handler and forget the active formatter. For tests."""
    global _active_formatter
    root_logger = logging.getLogger()
    root_logger.handlers = [
        h for h in root_logger.handlers
        if not getattr(h, "_alertshape_managed", False)
    ]
    root_logger.setLevel(logging.WARNING)
    _active_formatter = None
    structlog.reset_defaults()
