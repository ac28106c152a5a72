import os
import time
import json
import logging
from contextlib import contextmanager
from typing import Dict, Any, Optional
from datetime import datetime, timezone

import sentry_sdk

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class TimingContext:
    """Context manager for timing operations."""

    def __init__(self, operation_name: str):
        self.operation_name = operation_name
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.duration_ms = (time.time() - self.start_time) * 1000

    def get_duration_ms(self) -> Optional[float]:
        """Get duration in milliseconds."""
        return self.duration_ms


@contextmanager
def timing(operation_name: str):
    """Context manager for timing operations."""
    context = TimingContext(operation_name)
    with context:
        yield context


def log_event(
    action: str,
    driver: str,
    title: str,
    recipients_count: int,
    event_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> None:
    """
    Log a structured scheduling event.

    Args:
        action: The action performed (e.g., 'saved', 'notified', 'skipped')
        driver: The store or push driver involved (e.g., 'memory', 'expo')
        title: The event title
        recipients_count: Number of devices or attendees involved
        event_id: Optional store-assigned event id
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields to include in the log
    """
    log_entry = {
        "timestamp": _utc_timestamp(),
        "action": action,
        "driver": driver,
        "title": _sanitize_title(title),
        "recipients_count": recipients_count,
    }

    if event_id is not None:
        log_entry["event_id"] = event_id

    if duration_ms is not None:
        log_entry["duration_ms"] = round(duration_ms, 2)

    log_entry.update(kwargs)

    logger.info(json.dumps(log_entry, separators=(',', ':'), default=str))


def _sanitize_title(title: str) -> str:
    """
    Sanitize an event title before it reaches the logs.

    Args:
        title: The original title

    Returns:
        Title safe for logging
    """
    sensitive_patterns = [
        "password",
        "secret",
        "token",
        "credential",
    ]

    lowered = title.lower()
    for pattern in sensitive_patterns:
        if pattern in lowered:
            return "[REDACTED]"

    if len(title) > 100:
        return title[:97] + "..."

    return title


def init_sentry() -> bool:
    """
    Initialize Sentry if enabled and DSN is provided.

    Returns:
        True if Sentry was initialized, False otherwise
    """
    if not os.getenv("OBS_ENABLED", "false").lower() == "true":
        return False

    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        logger.info("Sentry DSN not provided, skipping Sentry initialization")
        return False

    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    try:
        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[
                FastApiIntegration(),
                LoggingIntegration(
                    level=logging.INFO,
                    event_level=logging.ERROR
                ),
            ],
            traces_sample_rate=0.1,
            environment=os.getenv("ENVIRONMENT", "development"),
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")
        return False

    logger.info("Sentry initialized successfully")
    return True


def log_error(error: Exception, context: Dict[str, Any] = None) -> None:
    """
    Log an error with optional context.

    Args:
        error: The exception to log
        context: Optional context dictionary
    """
    log_entry = {
        "timestamp": _utc_timestamp(),
        "level": "ERROR",
        "error": str(error),
        "error_type": type(error).__name__,
    }

    if context:
        log_entry.update(context)

    logger.error(json.dumps(log_entry, separators=(',', ':'), default=str))


def log_warning(message: str, context: Dict[str, Any] = None) -> None:
    """Log a warning with optional context."""
    log_entry = {
        "timestamp": _utc_timestamp(),
        "level": "WARNING",
        "message": message,
    }

    if context:
        log_entry.update(context)

    logger.warning(json.dumps(log_entry, separators=(',', ':'), default=str))


def log_info(message: str, context: Dict[str, Any] = None) -> None:
    log_entry = {
        "timestamp": _utc_timestamp(),
        "level": "INFO",
        "message": message,
    }

    if context:
        log_entry.update(context)

    logger.info(json.dumps(log_entry, separators=(',', ':'), default=str))
