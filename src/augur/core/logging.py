"""Structured logging for Augur.

Every component logs through ``get_logger("<component>")``, which returns
an AugurLogger that resolves the structlog logger on each call, so loggers
created at import time follow a later ``configure_logging()``.

Event names are snake_case; details go in keyword arguments:

    logger = get_logger("executor")
    logger.info("query_completed", provider="gpt-4", latency_ms=812.4)

Log lines emitted while a RequestContext is active carry its request_id,
record_id and mode:

    with with_context(RequestContext(record_id="pick-123")):
        logger.debug("cache_miss")
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from augur.core.config import LogConfig

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]

REDACTED = "[REDACTED]"

# Substrings of keys whose values must never reach a log sink. "token" is
# absent on purpose: tokens_used and max_tokens are usage figures.
SENSITIVE_PATTERNS = frozenset({
    "api_key",
    "apikey",
    "api-key",
    "access_token",
    "auth_token",
    "secret",
    "password",
    "credential",
    "bearer",
    "authorization",
})


@dataclass(frozen=True)
class RequestContext:
    """Correlation fields for one advice request.

    Attributes:
        record_id: Decision record being advised on.
        request_id: Random UUID, unique per request.
        mode: "single" or "consensus".
    """

    record_id: str
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    mode: str = "single"

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


_request_context: ContextVar[RequestContext | None] = ContextVar(
    "augur_request_context", default=None
)


def get_current_context() -> RequestContext | None:
    return _request_context.get()


@contextmanager
def with_context(ctx: RequestContext) -> Iterator[RequestContext]:
    """Make ``ctx`` the active RequestContext inside the block.

    Each asyncio task sees its own value, so concurrent requests never
    mix their correlation ids.
    """
    reset_token = _request_context.set(ctx)
    try:
        yield ctx
    finally:
        _request_context.reset(reset_token)


# =============================================================================
# Processors
# =============================================================================


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(pattern in lowered for pattern in SENSITIVE_PATTERNS)


def _sanitize_value(key: str, value: Any) -> Any:
    return REDACTED if _is_sensitive(key) else value


def _sanitize_event_dict(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Redact sensitive keys at the top level and inside nested mappings."""
    sanitized: EventDict = {}
    for key, value in event_dict.items():
        if _is_sensitive(key):
            sanitized[key] = REDACTED
        elif isinstance(value, Mapping):
            sanitized[key] = {k: _sanitize_value(str(k), v) for k, v in value.items()}
        else:
            sanitized[key] = value
    return sanitized


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Merge the active RequestContext; explicitly logged keys win."""
    ctx = _request_context.get()
    if ctx is None:
        return event_dict
    for key, value in ctx.to_dict().items():
        event_dict.setdefault(key, value)
    return event_dict


def _shared_processors(
    *,
    include_timestamps: bool,
    include_context: bool,
) -> list[Processor]:
    """Processors applied to structlog events and stdlib records alike."""
    chain: list[Processor] = [
        structlog.stdlib.add_log_level,
        _sanitize_event_dict,
    ]
    if include_context:
        chain.append(_add_context)
    if include_timestamps:
        chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    chain += [
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    return chain


def _build_formatter(renderer: Processor, shared: list[Processor]) -> logging.Formatter:
    # Records from asyncio, httpx and the SDKs render like our own events
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[structlog.stdlib.add_logger_name, *shared],
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


# =============================================================================
# Logger wrapper
# =============================================================================


class AugurLogger:
    """Component-scoped logger over structlog."""

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    def bind(self, **context: Any) -> AugurLogger:
        """Return a new logger with extra context; this one is unchanged."""
        merged = {**self._context, **context}
        merged.pop("component")
        return AugurLogger(self._component, **merged)

    def _emit(self, method: str, event: str, fields: dict[str, Any]) -> None:
        bound = structlog.get_logger().bind(**self._context)
        getattr(bound, method)(event, **fields)

    def debug(self, event: str, **fields: Any) -> None:
        self._emit("debug", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit("info", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit("warning", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit("error", event, fields)

    def exception(self, event: str, **fields: Any) -> None:
        """Log at error level with the active exception's traceback."""
        self._emit("exception", event, fields)


def get_logger(component: str, **initial_context: Any) -> AugurLogger:
    """Logger for one component, e.g. ``get_logger("consensus")``."""
    return AugurLogger(component, **initial_context)


# =============================================================================
# Configuration
# =============================================================================


def _build_handlers(
    level: int,
    format: LogFormat,  # noqa: A002
    file_path: Path | None,
    max_file_size_mb: int,
    backup_count: int,
    formatter: logging.Formatter,
) -> list[logging.Handler]:
    # JSON lines go to stdout for collectors; console output stays on stderr
    stream = sys.stdout if format == "json" else sys.stderr
    handlers: list[logging.Handler] = [logging.StreamHandler(stream)]
    if file_path is not None:
        file_path = file_path.expanduser()
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                file_path,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def configure_logging(
    level: LogLevel = "INFO",
    format: LogFormat = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 50,
    backup_count: int = 5,
    include_timestamps: bool = True,
    include_context: bool = True,
) -> None:
    """Install handlers on the root logger and configure structlog.

    Replaces any handlers already on the root logger, so calling it again
    reconfigures rather than duplicates output.

    Args:
        level: Minimum level emitted.
        format: "json" for one JSON object per line, "console" for
            coloured human-readable lines.
        file_path: When set, also write to this file with size-based
            rotation.
        max_file_size_mb: Rotation threshold for file_path.
        backup_count: Rotated files kept next to file_path.
        include_timestamps: Add an ISO 8601 UTC ``timestamp`` field.
        include_context: Merge the active RequestContext into each line.
    """
    numeric_level = logging.getLevelName(level)
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if format == "json"
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    shared = _shared_processors(
        include_timestamps=include_timestamps,
        include_context=include_context,
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    handlers = _build_handlers(
        numeric_level,
        format,
        file_path,
        max_file_size_mb,
        backup_count,
        _build_formatter(renderer, shared),
    )
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(numeric_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Loggers must not be cached so reconfiguration reaches them
        cache_logger_on_first_use=False,
    )


def configure_from_config(config: LogConfig) -> None:
    """Apply the ``logging`` section of an engine configuration."""
    configure_logging(
        level=config.level,
        format=config.format,
        file_path=config.file_path,
        max_file_size_mb=config.max_file_size_mb,
        backup_count=config.backup_count,
    )


__all__ = [
    "AugurLogger",
    "RequestContext",
    "SENSITIVE_PATTERNS",
    "configure_from_config",
    "configure_logging",
    "get_current_context",
    "get_logger",
    "with_context",
]
