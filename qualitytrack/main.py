from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from qualitytrack.domain.exceptions import (PermissionDeniedError,
                                            QualityTrackException,
                                            ResourceNotFoundException,
                                            StoreUnavailableError,
                                            ValidationException)
from qualitytrack.infrastructure.config.settings import get_settings
from qualitytrack.infrastructure.persistence.database import get_engine
from qualitytrack.presentation.api.v1.router import api_router
from qualitytrack.shared.telemetry.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for application initialization and cleanup"""
    setup_logging()
    logger.info("Starting %s", app.title)

    if get_settings().telemetry_enabled:
        logger.info("Tracing enabled; spans export through the configured OpenTelemetry SDK")
    else:
        logger.info("Distributed tracing disabled in configuration")

    # Database schema is created by scripts/seed_rbac.py
    yield

    await get_engine().dispose()
    logger.info("Database engine disposed")


_STATUS_BY_EXCEPTION: list[tuple[type[QualityTrackException], int]] = [
    (ValidationException, status.HTTP_400_BAD_REQUEST),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (ResourceNotFoundException, status.HTTP_404_NOT_FOUND),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


async def quality_track_exception_handler(
    request: Request, exc: QualityTrackException
) -> JSONResponse:
    """Map domain exceptions to HTTP responses"""
    if isinstance(exc, PermissionDeniedError):
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN, content={"detail": "Forbidden"}
        )
    if isinstance(exc, StoreUnavailableError):
        # Details name internal operations; keep them in the log only
        logger.error("%s %s failed closed: %s", request.method, request.url.path, exc.details)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Service temporarily unavailable"},
        )

    status_code = next(
        (code for exc_type, code in _STATUS_BY_EXCEPTION if isinstance(exc, exc_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.add_exception_handler(QualityTrackException, quality_track_exception_handler)
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
        }

    return app


app = create_app()
