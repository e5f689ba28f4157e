"""Startup script for the applications service with graceful shutdown configuration."""

import os

import uvicorn


def main() -> None:
    """Start the service with graceful shutdown configuration."""
    host = os.getenv("APIHUB_HOST", "0.0.0.0")
    port = int(os.getenv("APIHUB_PORT", "9000"))
    reload = os.getenv("APIHUB_RELOAD", "false").lower() == "true"
    shutdown_timeout = int(os.getenv("SHUTDOWN_TIMEOUT_SECONDS", "30"))

    config = uvicorn.Config(
        "apihub_applications_service.main:app",
        host=host,
        port=port,
        reload=reload,
        timeout_graceful_shutdown=shutdown_timeout,
        log_level=os.getenv("APIHUB_LOG_LEVEL", "info").lower(),
    )

    server = uvicorn.Server(config)
    server.run()


if __name__ == "__main__":
    main()
