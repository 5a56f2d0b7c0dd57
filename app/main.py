from contextlib import asynccontextmanager
from datetime import datetime, timezone
import asyncio
import logging

from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app.config import settings, setup_logging
from app.exceptions import (
    GuideServiceError,
    InvalidArgumentError,
    InvalidFormatError,
    NotReadyError,
    SourceUnavailableError,
)
from app.schemas import ErrorDetail, StandardErrorResponse
from app.services import get_listings_watcher

from app.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)

NOT_READY_RETRY_AFTER_SEC = 5


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting TV Guide Service...")

    watcher = get_listings_watcher()
    store = watcher.store

    try:
        logger.info("Loading listings from %s...", store.source_path)
        await asyncio.to_thread(store.refresh)
        logger.info("Listings loaded successfully")
    except GuideServiceError as e:
        logger.error(f"Initial listings load failed, starting without listings: {e}")

    try:
        watcher.start()
    except Exception as e:
        logger.error(f"Failed to start TV Guide Service: {e}", exc_info=True)
        raise

    logger.info("TV Guide Service started successfully")

    yield

    logger.info("Shutting down TV Guide Service...")

    try:
        watcher.shutdown()
    except Exception as e:
        logger.error(f"Error during watcher shutdown: {e}", exc_info=True)

    logger.info("TV Guide Service stopped")


app = FastAPI(
    title="TV Guide Service",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(main_router)


def _error_response(
    status_code: int,
    exc: GuideServiceError,
    context: dict | None = None,
    headers: dict | None = None
) -> JSONResponse:
    body = StandardErrorResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        error=ErrorDetail(code=exc.code, message=str(exc), context=context)
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(request: Request, exc: InvalidArgumentError):
    """Bad grid parameters are surfaced verbatim"""
    logger.warning(f"Invalid argument for {request.method} {request.url.path}: {exc}")
    return _error_response(400, exc, context={"query": str(request.query_params)})


@app.exception_handler(InvalidFormatError)
async def invalid_format_handler(request: Request, exc: InvalidFormatError):
    """Malformed timestamp in the request"""
    logger.warning(f"Invalid format for {request.method} {request.url.path}: {exc}")
    return _error_response(400, exc)


@app.exception_handler(NotReadyError)
async def not_ready_handler(request: Request, exc: NotReadyError):
    """No listings loaded yet, ask the caller to retry"""
    logger.warning(f"Listings not ready for {request.method} {request.url.path}")
    return _error_response(
        503,
        exc,
        headers={"Retry-After": str(NOT_READY_RETRY_AFTER_SEC)}
    )


@app.exception_handler(SourceUnavailableError)
async def source_unavailable_handler(request: Request, exc: SourceUnavailableError):
    """Listings file could not be read or parsed"""
    logger.error(f"Listings source unavailable for {request.method} {request.url.path}: {exc}")
    return _error_response(503, exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Query parameters FastAPI could not coerce, reported in the error envelope"""
    errors = [
        {
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        }
        for error in exc.errors()
    ]
    logger.warning(f"Validation error for {request.method} {request.url.path}: {errors}")

    body = StandardErrorResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        error=ErrorDetail(
            code="VALIDATION_ERROR",
            message="Request parameters failed validation",
            context={"errors": errors}
        )
    )
    return JSONResponse(status_code=422, content=body.model_dump())
