"""Configuration infrastructure module."""

from apihub_applications.infrastructure.config.settings import ApplicationsSettings

__all__ = ["ApplicationsSettings"]
