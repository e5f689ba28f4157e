"""FastAPI application entry point for the API Hub applications service."""

import asyncio
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI

from apihub_applications.infrastructure.observability.logger import configure_logging
from apihub_applications_service import dependencies
from apihub_applications_service.api import access_requests, applications, teams
from apihub_applications_service.errors import register_exception_handlers
from apihub_applications_service.middleware.request_context import RequestContextMiddleware

logger = structlog.get_logger(__name__)


def get_shutdown_timeout() -> int:
    """Get shutdown timeout from environment variable.

    Returns:
        Shutdown timeout in seconds (default: 30).
    """
    return int(os.getenv("SHUTDOWN_TIMEOUT_SECONDS", "30"))


async def cleanup_resources() -> None:
    """Close the resources the dependency providers created.

    Closes:
    - The state store (MongoDB client), if one was created
    - The shared HTTP client, if one was created
    """
    logger.info("shutdown_started")

    if dependencies.get_state_store.cache_info().currsize:
        state_store: Any = dependencies.get_state_store()
        try:
            if hasattr(state_store, "close"):
                await state_store.close()
                logger.info("shutdown_resource_closed", resource="state_store")
        except Exception as e:
            logger.warning("shutdown_resource_error", resource="state_store", error=str(e))

    if dependencies.get_http_client.cache_info().currsize:
        try:
            await dependencies.get_http_client().aclose()
            logger.info("shutdown_resource_closed", resource="http_client")
        except Exception as e:
            logger.warning("shutdown_resource_error", resource="http_client", error=str(e))

    logger.info("shutdown_completed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """FastAPI lifespan context manager for startup and shutdown.

    Startup configures logging and validates the environments so that a bad
    configuration stops the service before it takes traffic.
    """
    settings = dependencies.get_settings()
    configure_logging(settings.log_level, json_format=settings.json_logs)
    environments = dependencies.get_environments()
    logger.info(
        "application_startup",
        environments=[environment.id for environment in environments.ordered],
        events_enabled=settings.events_enabled,
    )

    yield

    shutdown_timeout = get_shutdown_timeout()
    try:
        await asyncio.wait_for(cleanup_resources(), timeout=shutdown_timeout)
    except asyncio.TimeoutError:
        logger.warning("shutdown_timeout_exceeded", timeout_seconds=shutdown_timeout)


app = FastAPI(
    title="API Hub Applications",
    version="0.1.0",
    description="Applications, access requests and credential scopes for the API Hub",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)
register_exception_handlers(app)

app.include_router(applications.router, prefix="/applications", tags=["applications"])
app.include_router(access_requests.router, prefix="/access-requests", tags=["access-requests"])
app.include_router(teams.router, prefix="/teams", tags=["teams"])


@app.get("/ping", include_in_schema=False)
async def ping() -> dict[str, Any]:
    """Liveness check reporting each environment's circuit breaker state."""
    registry = dependencies.get_breaker_registry()
    return {
        "status": "ok",
        "circuitBreakers": {env: state.value for env, state in registry.states().items()},
    }
