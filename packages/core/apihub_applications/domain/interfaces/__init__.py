"""Domain interfaces for dependency injection."""

from apihub_applications.domain.interfaces.email_connector import EmailConnector, EmailError
from apihub_applications.domain.interfaces.identity_connector import IdentityConnector
from apihub_applications.domain.interfaces.state_store import StateStore, StateStoreError

__all__ = [
    "EmailConnector",
    "EmailError",
    "IdentityConnector",
    "StateStore",
    "StateStoreError",
]
