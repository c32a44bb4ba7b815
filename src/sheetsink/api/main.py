"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sheetsink import __version__
from sheetsink.api import routers
from sheetsink.core.config import get_settings
from sheetsink.core.connections import close_default_manager, get_connection_manager
from sheetsink.core.exceptions import (
    Cancelled,
    EmptySource,
    IngestError,
    InvalidColumnType,
    InvalidTableName,
    MalformedFile,
    SheetsinkError,
    SinkErrorHint,
    SinkRejected,
)
from sheetsink.core.logging import configure_logging, get_logger
from sheetsink.reporting import UploadRegistry

logger = get_logger(__name__)


def error_status(error: SheetsinkError) -> int:
    """HTTP status for a pipeline error."""
    match error:
        case EmptySource() | MalformedFile() | InvalidTableName() | InvalidColumnType():
            return 400
        case SinkRejected(hint=SinkErrorHint.MISSING_TABLE):
            return 404
        case SinkRejected(hint=SinkErrorHint.TIMEOUT):
            return 504
        case SinkRejected():
            return 422
        case Cancelled():
            return 409
        case _:
            return 500


async def handle_sheetsink_error(request: Request, exc: Exception) -> JSONResponse:
    """Render pipeline errors as {"error", "rows_processed"}."""
    assert isinstance(exc, SheetsinkError)
    status = error_status(exc)
    if isinstance(exc, IngestError):
        body = {"error": exc.user_message(), "rows_processed": exc.rows_processed}
    else:
        body = {"error": str(exc), "rows_processed": 0}
    logger.warning(
        "request_failed",
        path=request.url.path,
        status=status,
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=status, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler.

    Opens the shared sink connection pool on startup and disposes of it on
    shutdown. FastAPI requires async lifespan, but our connections are sync.
    """
    get_connection_manager()

    yield

    close_default_manager()


def create_app(
    title: str = "sheetsink API",
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        title: API title
        cors_origins: Allowed CORS origins (default: allow all)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=title,
        version=__version__,
        description="Stream CSV and Excel files into relational tables",
        lifespan=lifespan,
    )
    settings = get_settings()
    configure_logging(log_level=settings.log_level, log_format=settings.log_format)

    app.state.uploads = UploadRegistry(
        max_finished=settings.upload_history_size,
        finished_ttl=settings.upload_history_seconds,
    )

    # Configure CORS
    if cors_origins is None:
        cors_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SheetsinkError, handle_sheetsink_error)

    # Include API routers
    app.include_router(routers.data.router, prefix="/api", tags=["data"])

    @app.get("/api/health")  # type: ignore[untyped-decorator]
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app
