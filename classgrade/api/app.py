"""
FastAPI application factory.

Collaborators (database session factory, file storage, AI client) are
built once per application from settings, or passed in explicitly, and
kept on ``app.state``.
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from classgrade import __version__
from classgrade.api.routes import assignments, courses, grading, submissions
from classgrade.config import Settings, get_settings
from classgrade.db.grading import GradingRepository
from classgrade.db.platform import PlatformRepository
from classgrade.db.session import session_factory_from_settings
from classgrade.errors import ClassgradeError
from classgrade.grading.ai_client import AIGradingClient
from classgrade.storage import FileStorage, R2FileStorage

logger = logging.getLogger(__name__)

UNAUTHENTICATED_PATHS = frozenset({"/health"})


def create_app(
    settings: Settings | None = None,
    session_factory: sessionmaker | None = None,
    storage: FileStorage | None = None,
    ai_client: AIGradingClient | None = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Configuration settings. Uses global settings if not provided.
        session_factory: SQLAlchemy session factory; built from settings if omitted.
        storage: File storage; R2 from settings if omitted and configured.
        ai_client: Grading model client; built from settings if omitted.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()
    session_factory = session_factory or session_factory_from_settings(settings)

    if storage is None and settings.storage_configured:
        storage = R2FileStorage.from_settings(settings)
    if storage is None:
        logger.warning("File storage is not configured; uploads and grading are unavailable")

    app = FastAPI(title="classgrade", version=__version__)

    app.state.settings = settings
    app.state.grading_repository = GradingRepository(session_factory)
    app.state.platform_repository = PlatformRepository(session_factory)
    app.state.storage = storage
    app.state.ai_client = ai_client or AIGradingClient(settings)

    _install_auth(app, settings)
    _install_error_handlers(app)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    prefix = settings.api_prefix
    app.include_router(grading.router, prefix=prefix)
    app.include_router(courses.router, prefix=prefix)
    app.include_router(assignments.router, prefix=prefix)
    app.include_router(submissions.router, prefix=prefix)

    return app


def _install_auth(app: FastAPI, settings: Settings) -> None:
    """Require the shared x-api-key header when an API key is configured."""
    if not settings.api_key:
        logger.warning("API key authentication is disabled")
        return

    expected = settings.api_key

    @app.middleware("http")
    async def authenticate_api_key(request: Request, call_next):
        if request.url.path in UNAUTHENTICATED_PATHS:
            return await call_next(request)

        api_key = request.headers.get("x-api-key")
        if not api_key:
            return JSONResponse(status_code=401, content={"error": "API key is required"})
        if api_key != expected:
            return JSONResponse(status_code=403, content={"error": "Invalid API key"})

        return await call_next(request)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ClassgradeError)
    async def handle_classgrade_error(request: Request, exc: ClassgradeError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s: %s (cause: %r)",
                request.method,
                request.url.path,
                type(exc).__name__,
                exc,
                exc.cause,
            )
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc)

        return JSONResponse(status_code=exc.status_code, content={"error": exc.client_message})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {problems}"})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
