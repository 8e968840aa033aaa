"""
Structured Logging Configuration.

structlog setup for the integrity engine:
- JSON lines (default) or colored console output
- Per-run correlation IDs and scoped context through structlog contextvars
- Redaction of credential-like keys

Logs go to stderr so a JSON summary printed on stdout stays parseable.
"""

import logging
import sys
import uuid
from typing import Any, Literal

import structlog
from structlog.types import EventDict, WrappedLogger

SERVICE_NAME = "stock-integrity"

SENSITIVE_KEYS = ("password", "secret", "token", "authorization", "credential")
REDACTED = "***REDACTED***"


class LogContext:
    """
    Bind key/value pairs to every log line emitted inside the block.

    A ``correlation_id`` is generated unless one is already bound or given,
    so nested contexts share the outer run's ID.

    Usage:
        with LogContext(operation="repair", dry_run=True) as ctx:
            logger.info("Repairing")  # carries operation, dry_run, correlation_id
            ctx.correlation_id
    """

    def __init__(self, **values: Any):
        self._values = values
        self._tokens: dict[str, Any] = {}
        self.correlation_id: str | None = None

    def __enter__(self) -> "LogContext":
        values = dict(self._values)
        if "correlation_id" not in values:
            values["correlation_id"] = current_correlation_id() or uuid.uuid4().hex[:16]
        self.correlation_id = values["correlation_id"]
        self._tokens = structlog.contextvars.bind_contextvars(**values)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        structlog.contextvars.reset_contextvars(**self._tokens)
        return False


def current_correlation_id() -> str | None:
    return structlog.contextvars.get_contextvars().get("correlation_id")


def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _redact(key: str, value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _redact(str(k), v) for k, v in value.items()}
    if isinstance(value, str) and any(s in key.lower() for s in SENSITIVE_KEYS):
        return REDACTED
    return value


def censor_sensitive_data(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace string values under credential-like keys, including nested dicts."""
    return {key: _redact(key, value) for key, value in event_dict.items()}


def configure_logging(
    level: str = "INFO",
    format: Literal["json", "console"] = "json",
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: "json" for machine-readable lines, "console" for development
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        add_service_info,
        censor_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
        force=True,
    )

    # The driver logs every routing table refresh at INFO
    logging.getLogger("neo4j").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
