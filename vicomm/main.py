import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from starlette import status
from slowapi import _rate_limit_exceeded_handler

from vicomm.database import Base, engine
from vicomm.config import settings
from vicomm.exceptions import SubmissionError, UpvoteConflict
from vicomm.Middleware.audit_middleware import audit_log_middleware
from vicomm import models  # noqa: F401  registers models on Base.metadata
from vicomm.limits import limiter, RateLimitExceeded, SlowAPIMiddleware
from vicomm.routers import (
    admin,
    auth,
    categories,
    images,
    listings,
    locations,
    user,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Vi Comm")
app.middleware("http")(audit_log_middleware)

# CORS (permissive for development; tighten in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting middleware and handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(SubmissionError)
async def submission_error_handler(request: Request, exc: SubmissionError):
    """Field-level validation errors of a listing form, nothing was written."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"status": "error", "errors": exc.errors},
    )


@app.exception_handler(UpvoteConflict)
async def upvote_conflict_handler(request: Request, exc: UpvoteConflict):
    # Reported as a toast, the request itself succeeds with no state change
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "error",
            "toast": {
                "title": "Error",
                "description": exc.description,
                "type": "error",
            },
        },
    )


@app.exception_handler(OperationalError)
async def database_operational_error_handler(request: Request, exc: OperationalError):
    """Handle database connection/operation errors"""
    logger.error(f"Database operational error: {exc}", exc_info=True)
    error_msg = str(exc).lower()

    if "could not connect" in error_msg or "connection" in error_msg:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "detail": "Database connection error. Please try again.",
                "error": "database_connection_error",
            },
        )
    elif "timeout" in error_msg:
        return JSONResponse(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            content={
                "detail": "Database query timeout. Please try again.",
                "error": "database_timeout",
            },
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error occurred", "error": "database_error"},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Handle general SQLAlchemy errors"""
    logger.error(f"Database error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error occurred", "error": "database_error"},
    )


# Only create tables for SQLite (local dev); other databases use Alembic migrations
if settings.DATABASE_URL.startswith("sqlite"):
    Base.metadata.create_all(bind=engine)


@app.get("/healthy", status_code=status.HTTP_200_OK)
def health_check():
    return {"status": "Healthy"}


app.include_router(auth.router)
app.include_router(user.router)
app.include_router(categories.router)
app.include_router(listings.router)
app.include_router(images.router)
app.include_router(locations.router)
app.include_router(admin.router)
