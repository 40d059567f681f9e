"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from recipe_suggest.api import dictionary, ingredients, suggestions
from recipe_suggest.config import get_settings
from recipe_suggest.exceptions import (
    DuplicateEntry,
    JobAccessDenied,
    JobNotFound,
    RateLimitExceeded,
    StoreUnavailable,
    ValidationError,
)
from recipe_suggest.logging_config import configure_logging
from recipe_suggest.services.rate_limiter import RateLimitStatus

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    configure_logging()
    logger.info(f"Starting recipe suggestion API ({settings.environment})")
    yield
    logger.info("Shutting down recipe suggestion API")


app = FastAPI(
    title="Recipe Suggestion API",
    description="Vietnamese ingredient recipe suggestions with tiered translation and caching",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:3001"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _rate_limit_body(quota: RateLimitStatus) -> dict:
    return {**quota.to_dict(), "reset_at": quota.reset_at.isoformat()}


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    content = {"detail": exc.message, "failed_ingredients": exc.failed_ingredients}
    headers = None
    if exc.rate_limit is not None:
        content["rate_limit"] = _rate_limit_body(exc.rate_limit)
        headers = exc.rate_limit.headers()
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content=content, headers=headers
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": str(exc),
            "rate_limit": _rate_limit_body(exc.status),
        },
        headers=exc.status.headers(),
    )


@app.exception_handler(JobNotFound)
async def job_not_found_handler(request: Request, exc: JobNotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Job not found"})


@app.exception_handler(JobAccessDenied)
async def job_access_denied_handler(request: Request, exc: JobAccessDenied):
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": "Not allowed to view this job"},
    )


@app.exception_handler(DuplicateEntry)
async def duplicate_entry_handler(request: Request, exc: DuplicateEntry):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error(f"Store unavailable on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable"},
        headers={"Retry-After": "30"},
    )


# Register routers
app.include_router(suggestions.router)
app.include_router(ingredients.router)
app.include_router(dictionary.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
