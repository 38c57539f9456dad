"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException

from backend.api.auth import router as auth_router
from backend.api.execution import router as execution_router
from backend.api.files import router as files_router
from backend.api.health import router as health_router
from backend.api.lsp import router as lsp_router
from backend.api.projects import router as projects_router
from backend.api.sync import router as sync_router
from backend.config import Settings
from backend.database import create_engine
from backend.exceptions import IdeError, InternalServerError
from backend.models.base import Base
from backend.remote.drive import drive_client_factory
from backend.schemas.common import ErrorResponse
from backend.services.rate_limit_service import InMemoryRateLimiter

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
    from starlette.responses import Response

logger = logging.getLogger(__name__)

_DEV_ORIGINS = ["http://localhost:5173", "http://localhost:3000"]


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stdout,
        force=True,
    )
    # Drive calls are logged by the remote client itself.
    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)


def _sqlite_file(database_url: str) -> Path | None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or url.database in (None, "", ":memory:"):
        return None
    return Path(url.database)


async def _open_record_store(
    settings: Settings,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    db_file = _sqlite_file(settings.database_url)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)

    try:
        engine, session_factory = create_engine(settings)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:
        logger.critical(
            "Failed to open record store at %s: %s. Check path and permissions.",
            settings.database_url,
            exc,
        )
        raise
    return engine, session_factory


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Open the record store and wire the Drive client factory."""
    settings: Settings = app.state.settings
    settings.validate_runtime_security()
    _configure_logging(settings.debug)
    logger.info("Starting AI-IDE backend (debug=%s)", settings.debug)

    app.state.engine, app.state.session_factory = await _open_record_store(settings)
    if app.state.remote_store_factory is None:
        app.state.remote_store_factory = drive_client_factory(settings)
        logger.info("Mirroring projects to Drive folder %r", settings.drive_root_folder_name)

    yield

    try:
        await app.state.engine.dispose()
    except Exception as exc:
        logger.error("Error while closing the record store: %s", exc, exc_info=True)
    logger.info("AI-IDE backend stopped")


def _error_response(
    status_code: int, message: str, *, error: str | None = None, code: str | None = None
) -> JSONResponse:
    body = ErrorResponse(message=message, error=error, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = err.get("loc", ())
        parts.append(f"{loc[-1] if loc else 'unknown'}: {err.get('msg', 'Invalid value')}")
    return "; ".join(parts) or "Invalid request"


def _install_error_envelope(app: FastAPI) -> None:
    """Render every failure as ``{"success": false, "message": ...}``."""

    @app.exception_handler(IdeError)
    async def ide_error_handler(request: Request, exc: IdeError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.info
        log("%s in %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        return _error_response(
            exc.status_code, exc.message, error=type(exc).__name__, code=exc.code
        )

    @app.exception_handler(InternalServerError)
    async def internal_error_handler(request: Request, exc: InternalServerError) -> JSONResponse:
        logger.error(
            "Internal error in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return _error_response(500, "Internal server error")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        _ = request
        response = _error_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = _validation_message(exc)
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, message)
        return _error_response(422, message, error="ValidationError")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.warning("ValueError in %s %s: %s", request.method, request.url.path, exc)
        return _error_response(422, str(exc) or "Invalid value", error="ValidationError")

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        logger.error(
            "Record store error in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return _error_response(503, "Database temporarily unavailable")


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _install_http_middleware(app: FastAPI, settings: Settings) -> None:
    """Rate limiting, security headers, request logging, compression and CORS.

    Starlette runs the last added middleware first, so CORS wraps everything
    and rejected requests still get security headers and a log line.
    """
    limiter: InMemoryRateLimiter = app.state.rate_limiter

    @app.middleware("http")
    async def rate_limit(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        if settings.rate_limit_enabled and path.startswith("/api/") and path != "/api/health":
            limited, retry_after = limiter.hit(
                _client_key(request),
                settings.rate_limit_max_requests,
                settings.rate_limit_window_seconds,
            )
            if limited:
                logger.warning("Rate limit exceeded for %s on %s", _client_key(request), path)
                response = _error_response(
                    429,
                    "Too many requests from this IP, please try again later.",
                    error="RateLimitExceeded",
                )
                response.headers["Retry-After"] = str(retry_after)
                return response
        return await call_next(request)

    @app.middleware("http")
    async def security_headers(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        if settings.security_headers_enabled:
            response.headers.setdefault("X-Content-Type-Options", "nosniff")
            response.headers.setdefault("X-Frame-Options", "DENY")
            response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
            if settings.content_security_policy:
                response.headers.setdefault(
                    "Content-Security-Policy", settings.content_security_policy
                )
        return response

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        if settings.log_requests:
            logger.info(
                "%s %s -> %d (%.1f ms) client=%s",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
                _client_key(request),
            )
        return response

    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or (_DEV_ORIGINS if settings.debug else []),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    docs_enabled = settings.debug or settings.expose_docs
    app = FastAPI(
        title="AI-IDE",
        description="Local-first code editor backend mirrored to Google Drive",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings
    app.state.remote_store_factory = None

    app.state.rate_limiter = InMemoryRateLimiter()
    _install_http_middleware(app, settings)

    for router in (
        health_router,
        auth_router,
        projects_router,
        files_router,
        sync_router,
        execution_router,
        lsp_router,
    ):
        app.include_router(router)

    _install_error_envelope(app)
    return app


def cli_entry() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "backend.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
