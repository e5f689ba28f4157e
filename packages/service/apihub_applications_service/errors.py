"""Mapping of domain errors onto HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from apihub_applications.domain.interfaces.state_store import StateStoreError
from apihub_applications.domain.models.errors import (
    ApplicationsError,
    ErrorKind,
    ScopesNotReconciledError,
)

logger = structlog.get_logger(__name__)


async def applications_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ApplicationsError)
    content = {"code": exc.code, "message": exc.message}
    if isinstance(exc, ScopesNotReconciledError):
        content["environments"] = exc.details["environments"]

    log = logger.error if exc.kind == ErrorKind.InternalInconsistency else logger.info
    log(
        "request_failed",
        path=request.url.path,
        code=exc.code,
        status=exc.http_status,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.http_status, content=content)


async def state_store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("state_store_failed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"code": "STORAGE_ERROR", "message": "The request could not be stored"},
    )


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    return JSONResponse(
        status_code=400,
        content={
            "code": "BAD_REQUEST",
            "message": "Invalid request",
            "errors": [
                {"location": list(error["loc"]), "message": error["msg"]}
                for error in exc.errors()
            ],
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain, storage and validation error handlers."""
    app.add_exception_handler(ApplicationsError, applications_error_handler)
    app.add_exception_handler(StateStoreError, state_store_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
