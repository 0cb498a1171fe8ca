"""Structured logging helpers and the process-wide log sink.

Purpose
    Keep every diagnostic emitted during configuration resolution predictable
    and contextual, and configure the process-wide sink once the log level has
    been resolved.

Contents
    - ``TRACE_ID``: context variable storing the active trace identifier.
    - ``TRACE``: numeric level below ``DEBUG`` for the ``trace`` level name.
    - ``LOG_LEVELS``: recognised level names mapped to :mod:`logging` levels.
    - ``get_logger``: returns the shared package logger (quiet by default).
    - ``bind_trace_id``: binds or clears the active trace identifier.
    - ``log_debug`` / ``log_info`` / ``log_warning`` / ``log_error``: emit
      structured entries via a single private emitter.
    - ``make_event``: convenience builder for structured event payloads.
    - ``parse_level`` / ``configure_logging``: validate a level name and apply
      it to the root logger.

System Integration
    Adapters and the assembler log through these helpers. The rest of the
    access server simply uses :mod:`logging`; once :func:`configure_logging`
    ran, its records share the same level and format.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from types import MappingProxyType
from typing import Any, Final, Mapping

from .domain.errors import ValidationError

TRACE_ID: ContextVar[str | None] = ContextVar("wg_access_config_trace_id", default=None)
"""Current trace identifier propagated through logging helpers."""

TRACE: Final[int] = 5
logging.addLevelName(TRACE, "TRACE")

LOG_LEVELS: Final[Mapping[str, int]] = MappingProxyType(
    {
        "fatal": logging.CRITICAL,
        "error": logging.ERROR,
        "warn": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
        "trace": TRACE,
    }
)
_LEVEL_ALIASES: Final[Mapping[str, str]] = MappingProxyType({"warning": "warn"})

_LOGGER: Final[logging.Logger] = logging.getLogger("wg_access_config")
_LOGGER.addHandler(logging.NullHandler())

_SINK: logging.Handler | None = None


def get_logger() -> logging.Logger:
    """Expose the package logger so applications may attach handlers."""

    return _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Bind or clear the active trace identifier.

    Examples
    --------
    >>> bind_trace_id('abc123')
    >>> TRACE_ID.get()
    'abc123'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


def log_debug(message: str, **fields: Any) -> None:
    """Emit a structured debug log entry that includes the trace context."""

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Emit a structured info log entry that includes the trace context."""

    _emit(logging.INFO, message, fields)


def log_warning(message: str, **fields: Any) -> None:
    """Emit a structured warning log entry that includes the trace context."""

    _emit(logging.WARNING, message, fields)


def log_error(message: str, **fields: Any) -> None:
    """Emit a structured error log entry that includes the trace context."""

    _emit(logging.ERROR, message, fields)


def make_event(
    step: str,
    field: str | None,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a structured logging payload for a resolution step.

    Examples
    --------
    >>> make_event('probe', 'vpn.gatewayInterface', {'interface': 'eth0'})
    {'step': 'probe', 'field': 'vpn.gatewayInterface', 'interface': 'eth0'}
    """

    event: dict[str, Any] = {"step": step, "field": field}
    if payload:
        event |= dict(payload)
    return event


def parse_level(name: str) -> str:
    """Return the canonical level name for *name* or raise :class:`ValidationError`.

    Matching is case-insensitive and ``warning`` is accepted for ``warn``.

    Examples
    --------
    >>> parse_level("DEBUG"), parse_level("warning")
    ('debug', 'warn')
    >>> parse_level("verbose")
    Traceback (most recent call last):
    ...
    wg_access_config.domain.errors.ValidationError: invalid log level 'verbose' - should be one of fatal, error, warn, info, debug, trace
    """

    lowered = name.strip().lower()
    canonical = _LEVEL_ALIASES.get(lowered, lowered)
    if canonical not in LOG_LEVELS:
        raise ValidationError(f"invalid log level {name!r} - should be one of {', '.join(LOG_LEVELS)}")
    return canonical


def configure_logging(level: str, *, stream: Any = None) -> logging.Handler:
    """Apply *level* to the root logger and install the shared stderr sink.

    Why
        The resolved log level governs the whole process, not only this
        package, so the root logger carries it.
    Side Effects
        Sets the root logger level. Replaces the handler installed by a
        previous call instead of stacking another one.
    """

    global _SINK
    root = logging.getLogger()
    if _SINK is not None:
        root.removeHandler(_SINK)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(ContextFormatter())
    root.addHandler(handler)
    root.setLevel(LOG_LEVELS[parse_level(level)])
    _SINK = handler
    return handler


def reset_logging() -> None:
    """Detach the sink installed by :func:`configure_logging`, if any."""

    global _SINK
    if _SINK is not None:
        logging.getLogger().removeHandler(_SINK)
        _SINK = None


class ContextFormatter(logging.Formatter):
    """Render ``time level file:line message`` followed by the structured context.

    Examples
    --------
    >>> record = logging.LogRecord("demo", logging.INFO, "/src/core.py", 7, "merged", None, None)
    >>> record.context = {"trace_id": None, "step": "merge"}
    >>> ContextFormatter(fmt="%(levelname)s %(caller)s %(message)s").format(record)
    'INFO core.py:7 merged step=merge'
    """

    def __init__(self, fmt: str | None = None) -> None:
        super().__init__(fmt or "%(asctime)s %(levelname)s %(caller)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        record.caller = f"{record.filename}:{record.lineno}"
        rendered = super().format(record)
        context = getattr(record, "context", None) or {}
        pairs = " ".join(f"{key}={value}" for key, value in context.items() if value is not None)
        return f"{rendered} {pairs}" if pairs else rendered


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Send a log entry through the shared logger with contextual metadata."""

    _LOGGER.log(level, message, extra={"context": _with_trace(fields)}, stacklevel=3)


def _with_trace(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Attach the current trace identifier to the provided structured fields."""

    context = {"trace_id": TRACE_ID.get()}
    context.update(fields)
    return context
