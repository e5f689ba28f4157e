"""Identity-system connectors."""

from apihub_applications.infrastructure.identity.breaker_connector import (
    CircuitBreakerIdentityConnector,
)
from apihub_applications.infrastructure.identity.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitOpenError,
    CircuitState,
    CircuitTimeoutError,
)
from apihub_applications.infrastructure.identity.idms_connector import IdmsConnector

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerIdentityConnector",
    "CircuitBreakerRegistry",
    "CircuitOpenError",
    "CircuitState",
    "CircuitTimeoutError",
    "IdmsConnector",
]
