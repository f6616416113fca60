"""FastAPI application entrypoint for the Table Reservation Engine."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.logging import get_logger, setup_logging
from apps.api.deps import get_reservation_service
from apps.api.routers import reservations
from domain.exceptions import (
    AdmissionRejectedError,
    InfrastructureError,
    InvalidTransitionError,
    NotFoundError,
    OutOfHoursError,
    ReservationError,
    ValidationError,
)


logger = get_logger(__name__)

APP_VERSION = "1.0.0"


def status_code_for(exc: ReservationError) -> int:
    """HTTP status for an engine error."""
    if isinstance(exc, (ValidationError, OutOfHoursError)):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (AdmissionRejectedError, InvalidTransitionError)):
        return 409
    if isinstance(exc, InfrastructureError):
        return 503
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    setup_logging()
    logger.info(f"Starting {settings.app_name} ({settings.app_env})...")

    # Builds the store and creates tables
    try:
        get_reservation_service()
        logger.info("Reservation store initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize reservation store: {e}")
        raise

    logger.info("Application startup complete")

    yield

    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title=settings.app_name,
    description="Table reservation admission engine",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


app.include_router(reservations.router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "app": settings.app_name,
        "status": "running",
        "version": APP_VERSION,
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "environment": settings.app_env,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "apps.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
