"""FastAPI application factory for Keyward-Engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from keyward_engine.common.config import get_settings
from keyward_engine.common.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateKeyError,
    KeyGenerationExhaustedError,
    KeywardError,
    LicenseNotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from keyward_engine.common.logging import setup_logging
from keyward_engine.common.schemas import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)

# Cross-seller access renders exactly like a missing record.
ERROR_STATUS = {
    ValidationError: 422,
    LicenseNotFoundError: 404,
    AuthorizationError: 404,
    DuplicateKeyError: 409,
    KeyGenerationExhaustedError: 409,
    ConflictError: 409,
    StoreUnavailableError: 503,
}


def error_status(exc: KeywardError) -> int:
    for exc_type, status in ERROR_STATUS.items():
        if isinstance(exc, exc_type):
            return status
    return 500


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from keyward_engine.deps import get_db
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(KeywardError)
    async def keyward_error_handler(request: Request, exc: KeywardError):
        status = error_status(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.code)
        if isinstance(exc, AuthorizationError):
            exc = LicenseNotFoundError()
        body = ErrorResponse(error=exc.__class__.__name__, code=exc.code, detail=exc.message)
        return JSONResponse(status_code=status, content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from keyward_engine.licensing.router import router as licensing_router
    from keyward_engine.reporting.router import router as reporting_router

    prefix = settings.api_prefix
    app.include_router(licensing_router, prefix=prefix, tags=["licensing"])
    app.include_router(reporting_router, prefix=prefix, tags=["reporting"])

    return app
