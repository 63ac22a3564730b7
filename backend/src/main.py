"""DocShare API application.

Wires the moderation, user, content and statistics routers under ``/api/v1``,
the operational endpoints at the root, request-id correlation and CORS.
Every error leaves the service as ``{"error", "message", "context"}``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from domain.moderation.errors import (
    ConflictError,
    ForbiddenError,
    ModerationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from observability.logging_config import configure_logging
from observability.middleware import REQUEST_ID_HEADER, RequestIDMiddleware
from observability.router import router as observability_router

from audit.router import router as audit_router
from users.router import router as users_router
from files.router import router as files_router
from categories.router import router as categories_router
from tags.router import router as tags_router
from stats.router import router as stats_router

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
API_VERSION = "0.1.0"

_DOCS_ENABLED = not settings.is_production

ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    ConflictError: status.HTTP_409_CONFLICT,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(status_code: int, error: str, message: str, context: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "context": context or {}},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"DocShare API {API_VERSION} starting (environment={settings.ENVIRONMENT}, debug={settings.DEBUG})"
    )
    yield
    logger.info("DocShare API stopped")


app = FastAPI(
    title="DocShare API",
    description="Document and image sharing with volunteer moderation",
    version=API_VERSION,
    docs_url="/docs" if _DOCS_ENABLED else None,
    redoc_url="/redoc" if _DOCS_ENABLED else None,
    openapi_url="/openapi.json" if _DOCS_ENABLED else None,
    lifespan=lifespan,
)

# Added first so every other layer, CORS included, runs with the id bound
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)


@app.exception_handler(ModerationError)
async def moderation_error_handler(request: Request, exc: ModerationError) -> JSONResponse:
    """Map an error kind to its status code.

    The context carries whatever made the request fail, e.g. the file's
    current status on a 409.
    """
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    log = logger.error if isinstance(exc, StorageError) else logger.info
    log(
        f"{exc.kind} on {request.method} {request.url.path}: {exc.message}",
        extra={"error_kind": exc.kind, "status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Rejected request body on {request.method} {request.url.path}")
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "validation_error",
        "Request validation failed",
        {"details": exc.errors()},
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database failures outside a unit of work, i.e. on read endpoints."""
    logger.error(f"Storage failure on {request.method} {request.url.path}", exc_info=exc)
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "storage_error",
        "Storage is temporarily unavailable",
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}", exc_info=exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred",
    )


app.include_router(observability_router)

for api_router in (
    audit_router,
    users_router,
    files_router,
    categories_router,
    tags_router,
    stats_router,
):
    app.include_router(api_router, prefix=API_PREFIX)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    return {
        "name": "DocShare API",
        "version": API_VERSION,
        "api": API_PREFIX,
        "docs": "/docs" if _DOCS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
