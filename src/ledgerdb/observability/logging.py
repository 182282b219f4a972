"""Structured logging configuration for ledgerdb.

Configures structlog with a shared processor chain. Development mode
renders human-readable console output, production mode renders JSON.
A rotating log file (always JSON) is written when a log path is set.

Standard log keys:
- command: Command name
- actor_id: Actor running the command
- table: Table name
- row_id: Row identifier
- phase: Dispatch phase

Event naming convention:
- dot.notation, domain.entity.verb_past_tense
  (e.g. "dispatch.command.committed", "store.initialized")

Usage:
    from ledgerdb.observability import configure_logging, get_logger

    configure_logging(LoggingConfig(level="debug"))
    log = get_logger(__name__)
    log.info("store.initialized", tables=3)
"""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
import sys
from typing import Any

import structlog

from ledgerdb.config.models import LoggingConfig, get_config_dir

LOG_RETENTION_DAYS = 7

_configured: bool = False
_current_config: LoggingConfig | None = None
_console_logging_enabled: bool = True

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _get_log_level(level: str) -> int:
    return _LEVELS.get(level.lower(), logging.INFO)


def _resolve_log_file(config: LoggingConfig) -> Path | None:
    if config.log_path is None:
        return None
    path = Path(config.log_path).expanduser()
    if not path.is_absolute():
        path = get_config_dir() / path
    return path


def _setup_file_handler(config: LoggingConfig) -> TimedRotatingFileHandler | None:
    """Set up a daily-rotating file handler, or None if file logging is off."""
    log_file = _resolve_log_file(config)
    if log_file is None:
        return None

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(log_file),
        when="midnight",
        interval=1,
        backupCount=LOG_RETENTION_DAYS,
        encoding="utf-8",
        utc=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(_get_log_level(config.level))
    return handler


def _get_shared_processors() -> list[Any]:
    return [
        # Merge contextvars into event dict (for cross-async context)
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _get_processors(mode: str) -> list[Any]:
    processors = _get_shared_processors()
    if mode == "dev":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())
    return processors


def set_console_logging(enabled: bool) -> None:
    """Enable or disable console log output.

    The CLI turns console output off while it renders tables so log lines do
    not interleave with them.
    """
    global _console_logging_enabled
    _console_logging_enabled = enabled


def is_console_logging_enabled() -> bool:
    return _console_logging_enabled


class _TeeLogger:
    """Print logger writing to stderr and, optionally, a file handler."""

    def __init__(self, file_handler: logging.Handler | None = None) -> None:
        self._file_handler = file_handler

    def _log(self, message: str, level: int) -> None:
        if _console_logging_enabled:
            print(message, file=sys.stderr)

        if self._file_handler is not None:
            record = logging.LogRecord(
                name="ledgerdb",
                level=level,
                pathname="",
                lineno=0,
                msg=message,
                args=(),
                exc_info=None,
            )
            self._file_handler.emit(record)

    def msg(self, message: str) -> None:
        self._log(message, logging.INFO)

    __call__ = msg

    def debug(self, message: str) -> None:
        self._log(message, logging.DEBUG)

    def info(self, message: str) -> None:
        self._log(message, logging.INFO)

    def warning(self, message: str) -> None:
        self._log(message, logging.WARNING)

    warn = warning

    def error(self, message: str) -> None:
        self._log(message, logging.ERROR)

    def critical(self, message: str) -> None:
        self._log(message, logging.CRITICAL)

    fatal = critical

    def exception(self, message: str) -> None:
        self._log(message, logging.ERROR)


class _TeeLoggerFactory:
    def __init__(self, file_handler: logging.Handler | None = None) -> None:
        self._file_handler = file_handler

    def __call__(self, *_args: Any) -> _TeeLogger:
        return _TeeLogger(self._file_handler)


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog for the application.

    Should be called once at startup; calling it again replaces the previous
    configuration.

    Args:
        config: Logging configuration. Defaults to LoggingConfig().
    """
    global _configured, _current_config

    if config is None:
        config = LoggingConfig()
    _current_config = config

    log_level = _get_log_level(config.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Remove existing handlers to avoid duplicates on reconfigure
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    file_handler = _setup_file_handler(config)
    if file_handler is not None:
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=_get_processors(config.mode),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=_TeeLoggerFactory(file_handler),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str | None = None) -> Any:
    """Get a bound logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables included in every subsequent log entry.

    Example:
        bind_context(actor_id="4f1c...", command="increment")
        log.info("dispatch.command.committed")  # includes actor_id, command
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


def get_current_config() -> LoggingConfig | None:
    return _current_config


def is_configured() -> bool:
    return _configured


def reset_logging() -> None:
    """Reset logging configuration state.

    Primarily for tests. Restores structlog defaults and drops bound context.
    """
    global _configured, _current_config, _console_logging_enabled
    _configured = False
    _current_config = None
    _console_logging_enabled = True
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
