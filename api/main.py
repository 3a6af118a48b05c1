"""
FastAPI main application for the Book Catalog API.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import config
from api.database import MemoryBackend, MongoBackend, StorageBackend
from api.models import ErrorResponse, HealthResponse, Violation, ViolationList
from api.routers import authors, books
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)

REQUEST_SECTIONS = ("body", "query", "path", "header", "cookie")


async def open_backend() -> StorageBackend:
    """Open the storage backend selected in configuration."""
    if config.storage_backend == "memory":
        logger.info("Using in-memory storage backend")
        return MemoryBackend()
    return await MongoBackend.connect(config.mongodb_url, config.mongodb_database)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    logger.info("Starting Book Catalog API", storage_backend=config.storage_backend)

    app.state.backend = await open_backend()

    yield

    logger.info("Shutting down Book Catalog API")
    await app.state.backend.close()


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description=config.api_description,
    version=config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its outcome and duration."""
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "Request handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2)
    )
    return response


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            status_code=exc.status_code
        ).dict(),
        headers=getattr(exc, "headers", None)
    )


def property_path(loc) -> str:
    """Field path of a validation error, without the request section."""
    parts = [str(part) for part in loc]
    if len(parts) > 1 and parts[0] in REQUEST_SECTIONS:
        parts = parts[1:]
    return ".".join(parts)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Answer rejected payloads with 400 and the list of violations."""
    violations = [
        Violation(propertyPath=property_path(error["loc"]), title=error["msg"])
        for error in exc.errors()
    ]
    logger.info(
        "Request validation failed",
        path=request.url.path,
        violations=[violation.propertyPath for violation in violations]
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ViolationList(
            detail="\n".join(f"{v.propertyPath}: {v.title}" for v in violations),
            violations=violations
        ).dict()
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).dict()
    )


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    backend = getattr(request.app.state, "backend", None)
    db_status = "unavailable"
    if backend is not None:
        health_info = await backend.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=config.api_version,
        database_status=db_status
    )


app.include_router(books.router, prefix=config.api_prefix)
app.include_router(authors.router, prefix=config.api_prefix)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
