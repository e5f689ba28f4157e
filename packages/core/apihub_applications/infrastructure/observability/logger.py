"""structlog configuration and log sanitization."""

import logging
from typing import Any

import structlog

_SENSITIVE_KEYS = frozenset({"secret", "client_secret", "clientSecret", "api_key", "apiKey"})


def sanitize_for_logging(data: Any) -> Any:
    """Sanitize data to remove sensitive information before logging.

    Replaces secret fields in dictionaries and nested structures so that
    identity-system secrets and API keys never reach the logs.

    Args:
        data: Data structure to sanitize (dict, list, or primitive).

    Returns:
        Sanitized data structure with secret fields redacted.
    """
    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            if key in _SENSITIVE_KEYS and value is not None:
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = sanitize_for_logging(value)
        return sanitized
    elif isinstance(data, list):
        return [sanitize_for_logging(item) for item in data]
    return data


def _redact_secrets(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    return sanitize_for_logging(event_dict)


def configure_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """Configure structlog over standard logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, render JSON for machine readability.
                    If False, use the human-readable console renderer.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _redact_secrets,
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
