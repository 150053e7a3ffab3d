"""
FastAPI application for the e-library API.
"""

import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routers import books, insights, ratings, users
from library.books import BookService
from library.database import LibraryDatabase
from library.errors import LibraryError
from library.insights import InsightService
from library.ratings import RatingService
from library.users import UserService
from storage.assets import AssetTransfer
from storage.cloudinary import CloudinaryClient
from storage.staging import StagingArea
from utilities.config import LibraryConfig
from utilities.logger import bind_request_context, clear_request_context, get_logger, setup_logging

logger = get_logger(__name__)

API_VERSION = "1.0.0"


def _error_response(config: LibraryConfig, status_code: int, message: str, exc: Exception) -> JSONResponse:
    stack = None
    if not config.is_production():
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    content = ErrorResponse(status_code=status_code, message=message, error_stack=stack)
    return JSONResponse(status_code=status_code, content=content.to_response())


def create_app(
    config: Optional[LibraryConfig] = None,
    database: Optional[LibraryDatabase] = None,
    storage_client: Optional[CloudinaryClient] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Configuration; read from the environment when omitted
        database: Already connected database; connected on startup when omitted
        storage_client: Object storage client; built from the configuration when omitted
    """
    config = config or LibraryConfig()
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.log_level == "DEBUG"
    )

    owns_database = database is None
    database = database or LibraryDatabase(config.mongodb_url, config.mongodb_database)
    owns_storage = storage_client is None
    storage_client = storage_client or CloudinaryClient(
        cloud_name=config.cloudinary_cloud_name,
        api_key=config.cloudinary_api_key,
        api_secret=config.cloudinary_api_secret,
        timeout=config.storage_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting e-library API", environment=config.environment)
        if owns_database:
            try:
                await database.connect()
            except Exception as e:
                logger.error("Failed to connect to database", error=str(e))
                raise

        yield

        logger.info("Shutting down e-library API")
        if owns_storage:
            await storage_client.close()
        if owns_database:
            await database.disconnect()

    app = FastAPI(
        title="E-Library API",
        description="""
    REST backend for an e-library.

    * **Users**: registration and login with bearer tokens
    * **Books**: authors upload books with a cover image and an optional file
    * **Ratings**: readers rate and review books
    * **Insights**: per-author rating statistics

    Authenticated endpoints expect `Authorization: Bearer <token>`.
    """,
        version=API_VERSION,
        lifespan=lifespan
    )

    assets = AssetTransfer(storage_client, config.image_folder, config.document_folder)
    app.state.config = config
    app.state.database = database
    app.state.staging = StagingArea(config.get_upload_dir_path(), config.max_upload_bytes)
    app.state.user_service = UserService(database)
    app.state.book_service = BookService(database, assets)
    app.state.rating_service = RatingService(database)
    app.state.insight_service = InsightService(database)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Bind a request id to every log event and log the outcome."""
        request_id = bind_request_context(
            request.headers.get("X-Request-ID"),
            method=request.method,
            path=request.url.path,
        )
        start_time = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error("Unhandled exception", error=str(exc), path=request.url.path)
                response = _error_response(
                    config, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", exc
                )
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2)
            )
            return response
        finally:
            clear_request_context()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        """Handle errors raised by the services and the auth gate."""
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message)
        return _error_response(config, exc.status_code, exc.message, exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        response = _error_response(config, exc.status_code, str(exc.detail), exc)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies and parameters are client errors."""
        messages = [
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        ]
        return _error_response(config, status.HTTP_400_BAD_REQUEST, "; ".join(messages) or "Invalid request", exc)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return _error_response(config, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", exc)

    @app.get("/", tags=["Health"])
    async def root():
        return {"message": "Welcome to the elib APIs"}

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        health_info = await database.health_check()
        db_status = health_info.get("status", "unknown")
        content = HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.now(timezone.utc),
            version=API_VERSION,
            database_status=db_status
        )
        return JSONResponse(content=content.to_response())

    app.include_router(users.router)
    app.include_router(books.router)
    app.include_router(ratings.router)
    app.include_router(insights.router)

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
