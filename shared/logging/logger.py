"""
Logger Implementation
=====================

structlog configuration shared by the search service. Entries pass through
one processor chain whether they come from structlog or from stdlib loggers
(uvicorn, httpx), then render as JSON in production or through Rich on a
terminal.

Signed AWS requests and bearer-token calls carry credentials in headers, so
every entry is scrubbed by ``censor_secrets`` before it is rendered.

Version: 0.1.0
"""

import datetime
import logging
import sys
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger


# Matched as substrings of the lower-cased key.
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "api_key",
        "secret",
        "token",
        "authorization",
        "signature",
        "x-amz-security-token",
    }
)

REDACTED = "***REDACTED***"

QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


def _is_sensitive(key: object) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def _scrub(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: REDACTED if _is_sensitive(k) else _scrub(v) for k, v in value.items()}
    return value


def censor_secrets(
    logger: WrappedLogger | None,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace credential-looking values, descending into nested header maps."""
    return _scrub(event_dict)


def _stamp(service_name: str) -> Processor:
    """Processor adding a UTC timestamp and the service identity."""

    def stamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["timestamp"] = datetime.datetime.now(datetime.UTC).isoformat()
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("version", "0.1.0")
        return event_dict

    return stamp


def _renderer(json_logs: bool) -> tuple[Processor, Processor]:
    """Return the exception processor and final renderer for the output mode."""
    if json_logs:
        return structlog.processors.format_exc_info, structlog.processors.JSONRenderer()

    console = structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=10),
    )
    return structlog.dev.set_exc_info, console


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    service_name: str = "regulatory-search",
) -> None:
    """
    Configure structlog and route stdlib logging through it.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Emit one JSON object per line instead of console output
        service_name: Value of the ``service`` field on every entry
    """
    level = logging.getLevelName(log_level.upper())
    exc_processor, renderer = _renderer(json_logs)

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        _stamp(service_name),
        censor_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        exc_processor,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> "BoundLogger":
    """
    Get a structured logger.

    Example:
        logger = get_logger(__name__)
        logger.info("search_started", request_id="abc123", sources_only=False)
    """
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach key-value pairs to every entry logged from the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop everything attached with ``bind_context``."""
    structlog.contextvars.clear_contextvars()
