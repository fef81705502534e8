"""
Structured logging for EventSync Finance.

Every HTTP request and CLI invocation carries one correlation id, so an
approval can be followed from the request line down to the appended events.
Rejected commands (business rule failures) log as warnings; anything else
that escapes an operation logs as an error.
"""

import contextvars
import logging
import secrets
import sys
import time
from typing import Any

import structlog

from eventsync_finance.kernel.errors import FinanceError
from eventsync_finance.kernel.settings import get_settings

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# PII and money never reach the log stream
REDACTED_FIELDS = frozenset(
    {
        "actor_id",
        "user_id",
        "incurred_by",
        "amount",
        "amount_cents",
        "receipt_url",
        "password",
        "token",
        "secret",
        "jwt_secret",
        "authorization",
    }
)
REDACTED = "***REDACTED***"


def generate_correlation_id() -> str:
    """22-character URL-safe id (128 bits)"""
    return secrets.token_urlsafe(16)


def get_correlation_id() -> str:
    """Current correlation id; a fresh one is bound on first use."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def _add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    event_dict["correlation_id"] = get_correlation_id()
    return event_dict


def configure_logging(
    *,
    json_output: bool | None = None,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Args:
        json_output: JSON lines for log shippers, or colored console output.
            Defaults to EVENTSYNC_JSON_LOGS.
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
            Defaults to EVENTSYNC_LOG_LEVEL.
    """
    settings = get_settings()
    if json_output is None:
        json_output = settings.json_logs
    level = getattr(logging, (log_level or settings.log_level).upper())

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    # Flask's request lines duplicate our own request logging
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_correlation_id,
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """
    Mask sensitive keys in a log context.

    Example:
        >>> redact_context({"actor_id": "u-1", "operation": "approve_budget"})
        {"actor_id": "***REDACTED***", "operation": "approve_budget"}
    """
    return {k: REDACTED if k in REDACTED_FIELDS else v for k, v in context.items()}


class LogOperation:
    """
    Times a façade operation and logs its outcome.

    A FinanceError means the command was refused (bad input, illegal
    transition, missing permission) and is logged as a warning with its
    error type. Any other exception is a fault and is logged as an error,
    with the traceback outside production.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        **context: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.context = redact_context(context)
        self.start_time: float = 0.0

    def __enter__(self) -> "LogOperation":
        self.start_time = time.perf_counter()
        self.logger.debug(f"{self.operation} started", operation=self.operation, **self.context)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
        fields = {"operation": self.operation, "duration_ms": duration_ms, **self.context}

        if exc_type is None:
            self.logger.info(f"{self.operation} completed", **fields)
        elif issubclass(exc_type, FinanceError):
            self.logger.warning(
                f"{self.operation} rejected",
                error_type=exc_type.__name__,
                error=str(exc_val),
                **fields,
            )
        else:
            self.logger.error(
                f"{self.operation} failed",
                error=str(exc_val),
                exc_info=not get_settings().is_production,
                **fields,
            )
