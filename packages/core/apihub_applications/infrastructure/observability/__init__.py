"""Logging configuration."""

from apihub_applications.infrastructure.observability.logger import (
    configure_logging,
    sanitize_for_logging,
)

__all__ = ["configure_logging", "sanitize_for_logging"]
