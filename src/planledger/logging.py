"""
Simple structured logging setup using structlog directly.

No wrappers, just standard structlog configuration.
"""

import logging
from typing import Any

import structlog

from planledger.settings import get_settings


def setup_logging() -> None:
    """
    Setup structured logging with structlog.

    Uses settings from centralized configuration.
    """
    observability = get_settings().observability

    logging.basicConfig(format="%(message)s", level=observability.log_level.value)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # Use JSON or console output based on settings
    if observability.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger.

    Args:
        name: Logger name, defaults to caller's module name

    Returns:
        Configured structured logger
    """
    return structlog.get_logger(name)


def get_audit_logger() -> structlog.stdlib.BoundLogger:
    """Get a logger specifically for audit events."""
    return structlog.get_logger("audit")


def log_audit_event(
    action: str,
    actor: str | None = None,
    account_id: str | None = None,
    tick: int | None = None,
    **kwargs: Any,
) -> None:
    """
    Log an audit event as a structured log entry.

    Audit events are structured logs on the ``audit`` logger; the durable
    copy lives in the ledger event table.
    """
    if not get_settings().observability.enable_audit_log:
        return

    get_audit_logger().info(
        action,
        audit_actor=actor,
        audit_account_id=account_id,
        audit_tick=tick,
        **kwargs,
    )


# Initialize on import
setup_logging()
