"""
FastAPI main application for the Book Review API.
"""

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import config as api_config
from api.models import ErrorResponse, HealthResponse
from api.dependencies import Services
from api.routes import auth, books, reviews
from store.database import MongoDBManager
from store.errors import APIError
from store.models import violation_message
from utilities.config import config
from utilities.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug,
    )
    logger.info("Starting Book Review API")

    # Startup fails when MongoDB is unreachable
    manager = MongoDBManager(config.mongodb_url, config.mongodb_database)
    try:
        await manager.connect()
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    app.state.services = Services(manager, config)
    logger.info("Database connection established")

    yield

    logger.info("Shutting down Book Review API")
    await manager.disconnect()


app = FastAPI(
    title=api_config.api_title,
    description="""
    A REST API for cataloguing books and collecting per-user reviews.

    ## Authentication

    Sign up or log in to obtain a token, then send it on protected routes:

    ```
    Authorization: Bearer your_token_here
    ```

    ## Listings

    Book listings accept `page`, `limit`, `sort` (e.g. `-published_year,title`),
    `fields` (e.g. `title,author`) and any other key as an equality filter.
    """,
    version=api_config.api_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_credentials=api_config.cors_allow_credentials,
    allow_methods=api_config.cors_allow_methods,
    allow_headers=api_config.cors_allow_headers,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log one line per request with its status and duration."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=uuid.uuid4().hex[:12])
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "Request handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return response


def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(exclude_none=True),
        headers=headers,
    )


# Exception handlers
@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    """Write the error envelope for expected failures."""
    if exc.status_code >= 500:
        logger.error("Request failed", error=exc.message, path=request.url.path)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are reported like any other validation failure."""
    errors = exc.errors()
    message = violation_message(errors[0]) if errors else "Invalid request"
    return _error(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle routing errors such as unknown paths and unsupported methods."""
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return _error(exc.status_code, f"Route not found: {request.url.path}")
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.exception("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            message="Server Error",
            error=None if config.is_production() else str(exc),
        ).model_dump(exclude_none=True),
    )


@app.get("/", tags=["Health"])
async def root():
    """Welcome message."""
    return {
        "message": "Welcome to Book Review API",
        "documentation": "See /docs for the interactive API documentation",
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    db_status = "unavailable"
    services = getattr(request.app.state, "services", None)
    if services is not None:
        health_info = await services.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=api_config.api_version,
        database_status=db_status,
    )


app.include_router(auth.router)
app.include_router(books.router)
app.include_router(reviews.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=config.log_level.lower()
    )
