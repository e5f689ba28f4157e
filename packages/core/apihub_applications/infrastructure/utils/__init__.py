"""Shared utilities."""

from apihub_applications.infrastructure.utils.encryption import EncryptionError, EncryptionService

__all__ = ["EncryptionError", "EncryptionService"]
