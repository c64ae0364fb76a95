"""Default observability manager implementation."""

import logging
from datetime import datetime
from typing import Any

import structlog

from assetdesk.domain.interfaces.observability_manager import (
    ObservabilityError,
    ObservabilityManager,
)

REDACTED_FIELDS = frozenset(
    {"reporter_email", "reporter_contact", "email", "phone", "contact", "groq_api_key", "api_key"}
)
"""Personal contact fields and credentials never written to logs."""


def sanitize_for_logging(data: Any) -> Any:
    """Redact contact details and credentials from data before logging.

    Args:
        data: Data structure to sanitize (dict, list, or primitive).

    Returns:
        Sanitized copy with REDACTED_FIELDS replaced by "[REDACTED]".
    """
    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            if key in REDACTED_FIELDS and value is not None:
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = sanitize_for_logging(value)
        return sanitized
    elif isinstance(data, list):
        return [sanitize_for_logging(item) for item in data]
    elif isinstance(data, str) and data.startswith("gsk_") and len(data) > 20:
        # Groq API keys
        return "[REDACTED]"
    return data


def configure_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """Configure structlog over stdlib logging."""
    processors: list[Any] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(message)s"
        if json_format
        else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class DefaultObservabilityManager(ObservabilityManager):
    """Default ObservabilityManager using structlog.

    JSON output for production, console rendering for development.
    """

    def __init__(self, log_level: str = "INFO", json_format: bool = True) -> None:
        """Initialize DefaultObservabilityManager.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            json_format: If True, render JSON. If False, human-readable output.
        """
        self._log_level = log_level
        self._json_format = json_format
        configure_logging(log_level, json_format)
        self._logger = structlog.get_logger("assetdesk")

    async def emit_event(
        self,
        event_type: str,
        payload: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        try:
            event_data = {**sanitize_for_logging(payload)}
            if metadata:
                sanitized_metadata = sanitize_for_logging(metadata)
                event_data["metadata"] = sanitized_metadata
                if "timestamp" not in sanitized_metadata:
                    event_data["metadata"]["timestamp"] = datetime.utcnow().isoformat()

            self._logger.info("event_emitted", event_type=event_type, **event_data)
        except Exception as e:
            raise ObservabilityError(f"Failed to emit event: {e}") from e

    async def log(
        self,
        level: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        try:
            sanitized_context = sanitize_for_logging(context) if context else None
            log_method = getattr(self._logger, level.lower(), self._logger.info)
            if sanitized_context:
                log_method(message, **sanitized_context)
            else:
                log_method(message)
        except Exception as e:
            raise ObservabilityError(f"Failed to log message: {e}") from e
