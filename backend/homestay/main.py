"""Homestay: FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from homestay.api.v1.admin import router as admin_router
from homestay.api.v1.auth import router as auth_router
from homestay.api.v1.bookings import router as bookings_router
from homestay.api.v1.listings import router as listings_router
from homestay.api.v1.reviews import router as reviews_router
from homestay.config import settings
from homestay.errors import AppError, Conflict, Unavailable
from homestay.schemas.common import ErrorResponse

# Root logger to stderr; every homestay.* module logs through it.
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting %s with %s storage", settings.app_name, settings.storage_backend)
    yield
    # Shutdown: dispose engine connections
    from homestay.database import engine

    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Homestay marketplace: listings, availability, bookings and reviews.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, code: str, retry: str | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, code=code, retry=retry)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, Unavailable):
        # The cause was logged where it happened; keep the response generic.
        logger.error("%s %s failed: storage unavailable", request.method, request.url.path)
    retry = "reselect" if isinstance(exc, Conflict) else None
    return _error(exc.status_code, exc.message, exc.code, retry)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail), "http_error")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid value')}" if location else "Invalid request"
    return _error(400, message, "validation_error")


# Routers
app.include_router(auth_router)
app.include_router(listings_router)
app.include_router(bookings_router)
app.include_router(reviews_router)
app.include_router(admin_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict:
    """Health check endpoint."""
    return {"success": True, "data": {"status": "healthy", "service": settings.app_name}}


@app.get("/", tags=["root"])
async def root() -> dict:
    """Root endpoint."""
    return {
        "success": True,
        "data": {"service": settings.app_name, "version": settings.app_version, "docs": "/docs"},
    }
