"""Logging helpers built on femtologging.

Lookout pre-formats every message before handing it to femtologging.
Dispatch events use a ``[event] key=value ...`` layout so log pipelines can
split them without a JSON decoder.

Example:
>>> from lookout.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Dispatching %d subscription(s)", 3)

"""

from __future__ import annotations

import datetime as dt
import enum
import os
import typing as typ

from femtologging import basicConfig, get_logger

LOG_LEVEL_ENV_VAR = "LOOKOUT_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


class LogLevel(enum.StrEnum):
    """Log levels understood by femtologging."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Normalize a log level string and report invalid inputs.

    Parameters
    ----------
    level : str | None
        Raw log level string, case-insensitive.

    Returns
    -------
    tuple[str, bool]
        The normalized level (``INFO`` when unusable) and whether the input
        was rejected.

    """
    normalized = (level or "").strip().upper()
    if normalized in LogLevel.__members__:
        return (normalized, False)
    return (DEFAULT_LOG_LEVEL, True)


def resolve_log_level(override: str | None = None) -> str:
    """Return ``override`` or the level named by ``LOOKOUT_LOG_LEVEL``."""
    return override or os.environ.get(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL)


def configure_logging(level: str, *, force: bool = False) -> tuple[str, bool]:
    """Configure femtologging and return the normalized level.

    Invalid levels fall back to ``INFO``; callers decide whether to warn.
    """
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


def format_log_message(template: str, *args: object) -> str:
    """Format a log message using percent-style interpolation."""
    return template % args


def _render_field(value: object) -> str:
    match value:
        case dt.datetime():
            return value.isoformat()
        case dt.timedelta():
            return f"{value.total_seconds():.3f}"
        case float():
            return f"{value:.3f}"
        case _:
            return str(value)


def format_event(event: str, **fields: object) -> str:
    """Render an event name and its fields as ``[event] key=value ...``.

    >>> format_event("dispatch.batch.completed", due=2, duration_seconds=0.5)
    '[dispatch.batch.completed] due=2 duration_seconds=0.500'

    """
    rendered = " ".join(
        f"{key}={_render_field(value)}" for key, value in fields.items()
    )
    return f"[{event}] {rendered}" if rendered else f"[{event}]"


class _SupportsLog(typ.Protocol):
    """Protocol for femtologging-compatible loggers."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: _SupportsLog,
    level: LogLevel,
    message: str,
    *,
    exc_info: object | None = None,
) -> None:
    logger.log(level.value, message, exc_info=exc_info, stack_info=False)


def log_debug(logger: _SupportsLog, template: str, *args: object) -> None:
    """Log a DEBUG message with percent-style formatting."""
    _emit(logger, LogLevel.DEBUG, format_log_message(template, *args))


def log_info(logger: _SupportsLog, template: str, *args: object) -> None:
    """Log an INFO message with percent-style formatting."""
    _emit(logger, LogLevel.INFO, format_log_message(template, *args))


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a WARNING message with percent-style formatting."""
    _emit(
        logger,
        LogLevel.WARNING,
        format_log_message(template, *args),
        exc_info=exc_info,
    )


def log_error(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an ERROR message with percent-style formatting.

    Parameters
    ----------
    logger : _SupportsLog
        Logger that receives the formatted message.
    template : str
        Message template using percent-style placeholders.
    *args : object
        Values to interpolate into the template.
    exc_info : object | None, optional
        Exception information to attach to the log record.

    """
    _emit(
        logger,
        LogLevel.ERROR,
        format_log_message(template, *args),
        exc_info=exc_info,
    )


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Log an exception with exc_info wired into femtologging."""
    _emit(logger, LogLevel.ERROR, message, exc_info=exc)


def log_event(
    logger: _SupportsLog,
    level: LogLevel,
    event: str,
    *,
    exc_info: object | None = None,
    **fields: object,
) -> None:
    """Log a structured event at ``level``.

    Parameters
    ----------
    logger : _SupportsLog
        Logger that receives the event.
    level : LogLevel
        Severity of the event.
    event : str
        Dotted event name, e.g. ``dispatch.batch.started``.
    exc_info : object | None, optional
        Exception information to attach to the log record.
    **fields : object
        Event fields, rendered in keyword order.

    """
    _emit(logger, level, format_event(event, **fields), exc_info=exc_info)


__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LOG_LEVEL_ENV_VAR",
    "LogLevel",
    "configure_logging",
    "format_event",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_error",
    "log_event",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
    "resolve_log_level",
]
