"""caseflow service entry point.

Initializes the FastAPI application with:
- Structured logging configured from settings
- The case store engine and session factory
- Exception handlers mapping caseflow errors to HTTP status codes
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from caseflow import __version__
from caseflow.api.router import router
from caseflow.database import close_database, init_database
from caseflow.errors import ConcurrentModificationError, NotFoundError, ValidationError
from caseflow.observability import get_logger, setup_logging
from caseflow.settings import Settings, get_settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format)

    # Startup: case store
    logger.info("Initializing case store", service=settings.service_name)
    init_database(settings)
    logger.info("caseflow startup complete", version=__version__)

    yield

    # Shutdown
    logger.info("Shutting down caseflow")
    await close_database()
    logger.info("caseflow shutdown complete")


async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": exc.message})


async def _validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info("Rejected request", path=request.url.path, error=exc.message, field=exc.field)
    return JSONResponse(status_code=400, content={"detail": exc.message, "field": exc.field})


async def _conflict_handler(request: Request, exc: ConcurrentModificationError) -> JSONResponse:
    logger.info("Version conflict", path=request.url.path, case_id=exc.case_id)
    return JSONResponse(status_code=409, content={"detail": exc.message})


async def _store_failure_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Case store failure", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the caseflow FastAPI application.

    Args:
        settings: Optional settings; read from the environment when omitted.

    Returns:
        The configured FastAPI app with the case router under /api/v1.
    """
    application = FastAPI(title="caseflow", version=__version__, lifespan=lifespan)
    application.state.settings = settings or get_settings()

    application.add_exception_handler(NotFoundError, _not_found_handler)  # type: ignore[arg-type]
    application.add_exception_handler(ValidationError, _validation_handler)  # type: ignore[arg-type]
    application.add_exception_handler(ConcurrentModificationError, _conflict_handler)  # type: ignore[arg-type]
    application.add_exception_handler(SQLAlchemyError, _store_failure_handler)  # type: ignore[arg-type]

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": application.state.settings.service_name}

    application.include_router(router, prefix="/api/v1")
    return application


app: FastAPI = create_app()
