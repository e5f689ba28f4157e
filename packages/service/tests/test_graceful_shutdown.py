"""Tests for graceful shutdown functionality."""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from apihub_applications_service import dependencies
from apihub_applications_service.main import cleanup_resources, get_shutdown_timeout


def cached_provider(resource: object, created: bool = True) -> MagicMock:
    """Stand-in for a @cache provider that reports whether it was ever called."""
    provider = MagicMock(return_value=resource)
    provider.cache_info.return_value = SimpleNamespace(currsize=1 if created else 0)
    return provider


class TestShutdownConfiguration:
    """Tests for shutdown configuration."""

    def test_get_shutdown_timeout_default(self) -> None:
        """Test that shutdown timeout defaults to 30 seconds."""
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("SHUTDOWN_TIMEOUT_SECONDS", None)
            assert get_shutdown_timeout() == 30

    def test_get_shutdown_timeout_from_env(self) -> None:
        """Test that shutdown timeout can be configured via environment variable."""
        with patch.dict(os.environ, {"SHUTDOWN_TIMEOUT_SECONDS": "60"}):
            assert get_shutdown_timeout() == 60


class TestCleanupResources:
    """Tests for resource cleanup during shutdown."""

    @pytest.mark.asyncio
    async def test_cleanup_with_no_resources(self) -> None:
        """Providers that were never called are not created just to be closed."""
        store_provider = cached_provider(AsyncMock(), created=False)
        client_provider = cached_provider(AsyncMock(), created=False)

        with patch.object(dependencies, "get_state_store", store_provider), patch.object(
            dependencies, "get_http_client", client_provider
        ):
            await cleanup_resources()

        store_provider.assert_not_called()
        client_provider.assert_not_called()

    @pytest.mark.asyncio
    async def test_cleanup_closes_store_and_http_client(self) -> None:
        """Test cleanup of the MongoDB connection and the shared HTTP client."""
        store = MagicMock()
        store.close = AsyncMock()
        http_client = MagicMock()
        http_client.aclose = AsyncMock()

        with patch.object(
            dependencies, "get_state_store", cached_provider(store)
        ), patch.object(dependencies, "get_http_client", cached_provider(http_client)):
            await cleanup_resources()

        store.close.assert_called_once()
        http_client.aclose.assert_called_once()

    @pytest.mark.asyncio
    async def test_cleanup_handles_errors_gracefully(self) -> None:
        """A failing close does not stop the remaining resources from closing."""
        store = MagicMock()
        store.close = AsyncMock(side_effect=Exception("Connection error"))
        http_client = MagicMock()
        http_client.aclose = AsyncMock()

        with patch.object(
            dependencies, "get_state_store", cached_provider(store)
        ), patch.object(dependencies, "get_http_client", cached_provider(http_client)):
            await cleanup_resources()

        store.close.assert_called_once()
        http_client.aclose.assert_called_once()
