"""
Pharmacy Control auth service

FastAPI application entry point. Serves the AuthService RPC methods.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pharmacy_auth.api.middleware.rpc_context import CALL_ID_HEADER, RpcContextMiddleware
from pharmacy_auth.api.middleware.message_size import MessageSizeLimitMiddleware
from pharmacy_auth.api.rpc import router as rpc_router
from pharmacy_auth.config import Settings, get_settings
from pharmacy_auth.database import Database
from pharmacy_auth.kernel.identity.identity_service import build_identity_service
from pharmacy_auth.logging_config import configure_logging, get_logger
from pharmacy_auth.schemas.common import HealthResponse

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Build the application.

    ``database`` may be passed in already open (tests do this); otherwise one
    is created from ``settings.database_url``. Either way the identity
    service is wired before the first call arrives.
    """
    settings = settings or get_settings()
    if database is None:
        database = Database(
            settings.database_url,
            timeout_seconds=settings.store_timeout_seconds,
        )
    database.open()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """
        Application lifespan handler.

        Runs startup and shutdown tasks. On shutdown uvicorn first drains
        in-flight calls, then the database is closed.
        """
        # Configure logging first
        configure_logging(
            log_level=settings.log_level,
            environment=settings.environment,
            debug=settings.debug,
        )

        # Startup
        logger.info("Starting %s v%s", settings.project_name, settings.version)
        database.open()
        await app.state.identity_service.hasher.prepare()
        if settings.auto_create_schema:
            await database.create_schema()
            logger.info("Database schema ensured")
        elif not await database.ping():
            logger.warning("Database not reachable at startup")
        logger.info("Listening on %s:%s", settings.rpc_host, settings.rpc_port)

        yield

        # Shutdown
        logger.info("Shutting down...")
        await database.close()

    app = FastAPI(
        title=settings.project_name,
        description="Authentication and identity for the pharmacy control system.",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.identity_service = build_identity_service(settings, database)
    app.state.started_at = time.monotonic()

    # add_middleware stacks innermost-first: the size check runs inside the call context
    app.add_middleware(MessageSizeLimitMiddleware, max_bytes=settings.max_message_bytes)
    app.add_middleware(RpcContextMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ):
        """Malformed request messages."""
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field,
                "message": error["msg"],
                "type": error["type"],
            })
        headers = {}
        call_id = getattr(request.state, "call_id", None)
        if call_id:
            headers[CALL_ID_HEADER] = call_id
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": "Malformed request", "errors": errors},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ):
        """Unexpected faults; no internal detail leaves the process."""
        logger.exception("Unhandled exception: %s", type(exc).__name__)
        call_id = getattr(request.state, "call_id", None)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "internal error", "call_id": call_id},
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Check service and database health."""
        connected = await database.ping()
        return HealthResponse(
            status="ok" if connected else "degraded",
            version=settings.version,
            database="connected" if connected else "disconnected",
            uptime_seconds=round(time.monotonic() - app.state.started_at, 3),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    app.include_router(rpc_router)

    return app


def run() -> None:
    """Serve the application until SIGINT/SIGTERM."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "pharmacy_auth.main:create_app",
        factory=True,
        host=settings.rpc_host,
        port=settings.rpc_port,
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
        log_config=None,
    )


# Main entry point for development
if __name__ == "__main__":
    run()
