"""Tests for CircuitBreakerIdentityConnector."""

import asyncio

import pytest

from apihub_applications.domain.models.errors import IdentityError, IdentityIssue
from apihub_applications.infrastructure.identity.breaker_connector import (
    CircuitBreakerIdentityConnector,
    is_counted_failure,
)
from apihub_applications.infrastructure.identity.circuit_breaker import (
    CircuitBreakerRegistry,
    CircuitState,
)
from fixtures.test_data import FakeIdentityConnector, make_environments


class SlowIdentityConnector(FakeIdentityConnector):
    async def fetch_client_scopes(self, environment, client_id):
        await asyncio.sleep(1)
        return set()


class TestIsCountedFailure:
    """Which identity failures count towards opening a breaker."""

    @pytest.mark.parametrize(
        ("issue", "counted"),
        [
            (IdentityIssue.CallError, True),
            (IdentityIssue.UnexpectedResponse, True),
            (IdentityIssue.Timeout, True),
            (IdentityIssue.Unauthorized, True),
            (IdentityIssue.ClientNotFound, False),
        ],
    )
    def test_identity_issues(self, issue, counted) -> None:
        assert is_counted_failure(IdentityError(issue, "failed")) is counted

    def test_other_exceptions_count(self) -> None:
        assert is_counted_failure(RuntimeError("boom"))


class TestCircuitBreakerIdentityConnector:
    """Tests for the breaker-guarded connector."""

    def setup_method(self) -> None:
        self.environments = make_environments()
        self.production = self.environments.for_id("production")
        self.test = self.environments.for_id("test")
        self.delegate = FakeIdentityConnector()
        self.delegate.grant("production", "prod-client", "read")
        self.delegate.grant("test", "test-client")
        self.registry = CircuitBreakerRegistry(failure_threshold=2, reset_timeout_seconds=60)
        self.connector = CircuitBreakerIdentityConnector(self.delegate, self.registry)

    async def fail_production_twice(self) -> None:
        self.delegate.fail("fetch", "production", IdentityIssue.CallError)
        for _ in range(2):
            with pytest.raises(IdentityError):
                await self.connector.fetch_client_scopes(self.production, "prod-client")

    @pytest.mark.asyncio
    async def test_delegates_calls(self) -> None:
        assert await self.connector.fetch_client_scopes(self.production, "prod-client") == {"read"}

        await self.connector.add_client_scope(self.test, "test-client", "write")
        await self.connector.remove_client_scope(self.production, "prod-client", "read")
        credential = await self.connector.create_client(self.test, "My App")
        await self.connector.delete_client(self.test, credential.client_id)

        assert self.delegate.scopes_for("test", "test-client") == {"write"}
        assert self.delegate.scopes_for("production", "prod-client") == set()
        assert self.delegate.deleted_clients == [("test", credential.client_id)]

    @pytest.mark.asyncio
    async def test_open_breaker_fails_fast_without_calling(self) -> None:
        await self.fail_production_twice()
        self.delegate.calls.clear()

        with pytest.raises(IdentityError) as exc_info:
            await self.connector.fetch_client_scopes(self.production, "prod-client")

        assert exc_info.value.issue == IdentityIssue.CallError
        assert exc_info.value.call_made is False
        assert exc_info.value.environment_id == "production"
        assert self.delegate.calls == []

    @pytest.mark.asyncio
    async def test_outage_in_one_environment_does_not_block_another(self) -> None:
        await self.fail_production_twice()

        assert await self.connector.fetch_client_scopes(self.test, "test-client") == set()
        assert self.registry.states() == {
            "production": CircuitState.Open,
            "test": CircuitState.Closed,
        }

    @pytest.mark.asyncio
    async def test_client_not_found_does_not_open(self) -> None:
        for _ in range(3):
            with pytest.raises(IdentityError) as exc_info:
                await self.connector.fetch_client_scopes(self.production, "missing")
            assert exc_info.value.issue == IdentityIssue.ClientNotFound

        assert self.registry.get("production").state == CircuitState.Closed

    @pytest.mark.asyncio
    async def test_breaker_timeout_becomes_identity_timeout(self) -> None:
        registry = CircuitBreakerRegistry(call_timeout_seconds=0.01)
        connector = CircuitBreakerIdentityConnector(SlowIdentityConnector(), registry)

        with pytest.raises(IdentityError) as exc_info:
            await connector.fetch_client_scopes(self.production, "prod-client")

        assert exc_info.value.issue == IdentityIssue.Timeout
        assert exc_info.value.http_status == 504
