"""
Application factory and setup functions.

This module builds and configures the FastAPI application: lifespan (startup
stages), middleware, routes and error handlers.

**Request pipeline order:**
1. CORS deny gate, then CORS headers and preflight
2. Request-body limit (JSON decoding happens in the route layer)
3. `/health` and `/`
4. `/api/auth`, `/api/users`, `/api/projects`
5. Not-found fallback
6. Generic error handler
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from project_admin.api.middleware.body_limit import BodyLimitMiddleware
from project_admin.api.middleware.cors import CorsPolicyMiddleware
from project_admin.api.routes import auth, projects, root, users
from project_admin.config.cors import CorsPolicy, build_cors_policy
from project_admin.config.database import Database
from project_admin.config.environment import Settings
from project_admin.core.startup import StartupState, run_database_stage, terminate_process
from project_admin.utils.errors import (
    AppError,
    app_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_error_handler,
)
from project_admin.utils.logger import get_logger

logger = get_logger(__name__)

API_TITLE = "Project Admin API"
API_VERSION = root.API_VERSION

ROUTE_GROUPS = (
    ("/api/auth", auth.router, "auth"),
    ("/api/users", users.router, "users"),
    ("/api/projects", projects.router, "projects"),
)


def create_lifespan(exit_process: Callable[[int], None]) -> Callable:
    """
    Create application lifespan context manager.

    Args:
        exit_process: Called with a non-zero code when the database stage fails

    Returns:
        Async context manager for application startup and shutdown events.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings: Settings = app.state.settings
        state: StartupState = app.state.startup
        database: Database = app.state.database

        logger.info(
            "Starting application",
            environment=settings.environment,
            database_startup_mode=settings.database_startup_mode,
        )

        stage = run_database_stage(
            state,
            database,
            attempts=settings.database_connect_attempts,
            backoff_seconds=settings.database_connect_backoff_seconds,
            exit_process=exit_process,
        )
        if settings.database_startup_mode == "blocking":
            if not await stage:
                # Reached only when exit_process returns
                raise state.database_error
        else:
            state.database_task = asyncio.create_task(stage)

        state.mark_accepting()
        logger.info("Application accepting requests")
        yield

        logger.info("Shutting down application")
        if state.database_task and not state.database_task.done():
            state.database_task.cancel()
            try:
                await state.database_task
            except asyncio.CancelledError:
                pass
        database.dispose()

    return lifespan


def setup_middleware(app: FastAPI, policy: CorsPolicy, max_body_bytes: int) -> None:
    """
    Configure request middleware.

    Starlette runs middleware in reverse order of registration:
    1. CORS deny gate (last registered, first executed)
    2. Starlette CORSMiddleware: response headers and preflight
    3. Request-body limit (first registered, last executed)
    """
    app.add_middleware(BodyLimitMiddleware, max_body_bytes=max_body_bytes)
    app.add_middleware(CORSMiddleware, **policy.middleware_options())
    app.add_middleware(CorsPolicyMiddleware, policy=policy)

    logger.info("Middleware configured", allowed_origins=sorted(policy.allowed_origins))


def register_routes(app: FastAPI) -> None:
    """Register health/root endpoints, then the business route groups."""
    app.include_router(root.router, tags=["root"])

    for prefix, router, tag in ROUTE_GROUPS:
        app.include_router(router, prefix=prefix, tags=[tag])

    logger.info("Routes registered", prefixes=[prefix for prefix, _, _ in ROUTE_GROUPS])


def setup_error_handlers(app: FastAPI) -> None:
    """
    Register error handlers, after everything else.

    1. Starlette HTTP errors: unmatched routes (not-found fallback), 405s
    2. AppError (application errors, including CORS denials)
    3. RequestValidationError (invalid or malformed request bodies)
    4. Exception (catch-all for unexpected errors)
    """
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Error handlers registered")


def create_application(
    settings: Settings,
    database: Optional[Database] = None,
    exit_process: Callable[[int], None] = terminate_process,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Validated settings; the CORS policy depends on them, so
            they must exist before anything is composed
        database: Database to use (defaults to one built from DATABASE_URL)
        exit_process: Process terminator used when the database stage fails

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=API_TITLE,
        version=API_VERSION,
        lifespan=create_lifespan(exit_process),
    )

    app.state.settings = settings
    app.state.database = database or Database(settings.database_url)
    app.state.startup = StartupState()

    setup_middleware(app, build_cors_policy(settings), settings.max_body_bytes)
    register_routes(app)
    setup_error_handlers(app)

    return app
