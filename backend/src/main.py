"""mailbridge - Main FastAPI Application

Local HTTP bridge that hands out one-time passcodes found in a Gmail or
iCloud mailbox.

This module creates and configures the FastAPI application, including:
- Passcode and observability routers
- Middleware (request ID correlation, CORS)
- Exception handlers
- Startup credential validation (fail fast)
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, get_settings
from domain.mail.clock import utc_now
from domain.mail.errors import MailBridgeError
from domain.mail.ports import MailboxFactory
from domain.passcode.resolver import PasscodeResolver
from infrastructure.mail.factory import build_mailbox_factory
from observability.logging_config import configure_logging
from observability.middleware import RequestIDMiddleware
from observability.router import router as observability_router
from passcode.router import router as passcode_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    mailbox_factory: Optional[MailboxFactory] = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """Application factory.

    Args:
        settings: Settings to use (defaults to get_settings())
        mailbox_factory: Mailbox factory; built from settings at startup when
            omitted, which validates credentials and raises
            ConfigurationError before any request is served
        clock: Time source for the resolver

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler.

        - Startup: build the mailbox factory and the resolver
        - Shutdown: nothing to release; sessions are per request
        """
        logger.info("mailbridge starting up...")
        logger.info(f"Environment: {settings.ENV}")

        factory = mailbox_factory or build_mailbox_factory(settings)
        app.state.resolver = PasscodeResolver(factory, settings.resolver_config(), clock=clock)

        logger.info(
            f"Passcode bridge ready on {settings.HOST}:{settings.PORT}",
            extra={
                "provider": settings.MAIL_PROVIDER,
                "subject_keyword": settings.SUBJECT_KEYWORD,
                "last_minutes": settings.LAST_MINUTES,
                "query_minutes": settings.QUERY_MINUTES,
            },
        )

        yield

        # Shutdown
        logger.info("mailbridge shutting down...")

    docs_enabled = settings.ENV != "production"
    app = FastAPI(
        title="mailbridge",
        description="One-time passcode bridge for Gmail and iCloud mailboxes",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # =========================================================================
    # MIDDLEWARE CONFIGURATION
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-Request-ID"],
    )

    # Request ID Middleware (added last so it wraps CORS preflights too)
    app.add_middleware(RequestIDMiddleware)

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        """Handle query parameter validation errors.

        Returns a structured error response with field-level details.
        """
        logger.warning(
            f"Validation error on {request.method} {request.url.path}",
            extra={"errors": jsonable_encoder(exc.errors())}
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "ok": False,
                "error": "validation_error",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException
    ) -> JSONResponse:
        """Answer routing errors in the bridge's {ok, error} shape."""
        error = "Not found" if exc.status_code == status.HTTP_404_NOT_FOUND else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "error": error},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(MailBridgeError)
    async def mailbox_exception_handler(
        request: Request,
        exc: MailBridgeError
    ) -> JSONResponse:
        """Handle mail backend failures raised while serving a request.

        Covers credentials that became unusable after startup as well as
        backend errors. The message is returned to the (local) caller;
        nothing is retried.
        """
        logger.error(
            f"Mailbox error on {request.method} {request.url.path}: {exc}",
            exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": str(exc)},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle uncaught exceptions.

        Full details are logged but not exposed to the client.
        """
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}",
            exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": "internal_error"},
        )

    # =========================================================================
    # ROUTER REGISTRATION
    # =========================================================================

    # Observability (health, metrics)
    app.include_router(observability_router)

    # Passcode bridge (recent, code)
    app.include_router(passcode_router)

    return app


def run() -> None:
    """Console entry point: serve the bridge with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,  # Use our structured logging
    )


if __name__ == "__main__":
    run()
