"""
Company Pipeline Backend: FastAPI Application Factory
=====================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance
       with its Dispatcher attached to app.state.
Who:   Called by uvicorn to start the server (uvicorn company_pipeline.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  HTTP Middleware Chain:                             │
    │  ┌──────────┐ ┌─────────────────┐ ┌──────────────┐  │
    │  │  Req ID  │→│  Pipeline Access│→│     CORS     │  │
    │  └──────────┘ └─────────────────┘ └──────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────────────────┐ ┌────────────────────────┐  │
    │  │ POST /companies    │ │ GET /health            │  │
    │  └─────────┬──────────┘ └────────────────────────┘  │
    │            ▼                                        │
    │  Dispatcher (app.state.dispatcher):                 │
    │  log_requests → add_key → add_hash → handler        │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Behavior/Handler/Config → 500 │ Cancel → 503 │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Log the configured pipelines
    Shutdown:
    1. Log shutdown complete
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from company_pipeline import __version__
from company_pipeline.config import Settings, settings
from company_pipeline.exceptions import (
    BehaviorFailureError,
    CompanyPipelineError,
    HandlerFailureError,
    NoHandlerRegisteredError,
    PipelineCancelledError,
    PipelineConfigurationError,
    PipelineError,
)
from company_pipeline.middleware.logging import PipelineAccessLogMiddleware, record_failed_stage
from company_pipeline.middleware.request_id import RequestIDMiddleware, request_id_var
from company_pipeline.pipeline import build_dispatcher
from company_pipeline.routes import companies, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for the entire application.

    What:    Root logger to stdout with a consistent line format.
    When:    Called once during app startup (before any other initialization).

    Format: 2024-01-15T12:00:00 [INFO] company_pipeline.services.behaviors: Adding key to request
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=getattr(logging, level or settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifecycle: startup and shutdown procedures.

    The Dispatcher itself is built in create_app() so that a broken pipeline
    configuration fails at import time, before the server binds a port.
    """
    cfg: Settings = app.state.settings
    setup_logging(cfg.log_level)
    logger.info("=" * 60)
    logger.info("%s %s starting up...", cfg.app_name, __version__)

    dispatcher = app.state.dispatcher
    for request_type in dispatcher.registered_types():
        pipeline = dispatcher.pipeline_for(request_type)
        logger.info(
            "Pipeline %s: %s → %s",
            request_type.__name__,
            " → ".join(pipeline.behavior_names) or "(no behaviors)",
            pipeline.handler.name,
        )

    logger.info("Server ready at http://%s:%d", cfg.backend_host, cfg.backend_port)
    logger.info("API docs: http://%s:%d/docs", cfg.backend_host, cfg.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("%s shutting down...", cfg.app_name)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
) -> JSONResponse:
    content = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        NoHandlerRegisteredError    → 500 configuration_error
        PipelineConfigurationError  → 500 configuration_error
        BehaviorFailureError        → 500 behavior_failure
        HandlerFailureError         → 500 handler_failure
        PipelineCancelledError      → 503 request_cancelled
        PipelineError               → 500 pipeline_error
        CompanyPipelineError (base) → 500 server_error
        Exception (fallback)        → 500 internal_server_error

    Security: original exception text and stack traces are logged server-side
    only; responses carry the stage name at most.
    """

    @app.exception_handler(NoHandlerRegisteredError)
    async def handle_no_handler(request: Request, exc: NoHandlerRegisteredError):
        """A request type reached the dispatcher without a registered handler."""
        rid = request_id_var.get("")
        logger.error("[%s] No handler registered: %s", rid, exc.request_type)
        record_failed_stage(request, "Dispatcher")
        return _error_response(500, "configuration_error", exc.message)

    @app.exception_handler(PipelineConfigurationError)
    async def handle_configuration_error(request: Request, exc: PipelineConfigurationError):
        rid = request_id_var.get("")
        logger.error("[%s] Pipeline configuration error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, "configuration_error", exc.message)

    @app.exception_handler(BehaviorFailureError)
    async def handle_behavior_failure(request: Request, exc: BehaviorFailureError):
        """A behavior raised; downstream stages did not run."""
        rid = request_id_var.get("")
        record_failed_stage(request, exc.behavior)
        logger.error(
            "[%s] Behavior failure: %s",
            rid,
            exc.message,
            exc_info=exc.__cause__ or exc,
        )
        return _error_response(
            500, "behavior_failure", exc.message, details={"behavior": exc.behavior}
        )

    @app.exception_handler(HandlerFailureError)
    async def handle_handler_failure(request: Request, exc: HandlerFailureError):
        rid = request_id_var.get("")
        record_failed_stage(request, exc.handler)
        logger.error(
            "[%s] Handler failure: %s",
            rid,
            exc.message,
            exc_info=exc.__cause__ or exc,
        )
        return _error_response(
            500, "handler_failure", exc.message, details={"handler": exc.handler}
        )

    @app.exception_handler(PipelineCancelledError)
    async def handle_cancelled(request: Request, exc: PipelineCancelledError):
        rid = request_id_var.get("")
        record_failed_stage(request, exc.stage or "unknown")
        logger.warning("[%s] Request cancelled at stage %s", rid, exc.stage or "unknown")
        response = _error_response(503, "request_cancelled", exc.message, details=exc.context)
        response.headers["Retry-After"] = "1"
        return response

    @app.exception_handler(PipelineError)
    async def handle_pipeline_error(request: Request, exc: PipelineError):
        rid = request_id_var.get("")
        record_failed_stage(request, exc.context.get("stage", "unknown"))
        logger.error("[%s] Pipeline error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, "pipeline_error", exc.message)

    @app.exception_handler(CompanyPipelineError)
    async def handle_app_error(request: Request, exc: CompanyPipelineError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for truly unexpected errors.

        Returns a generic 500 with a request ID for support tickets; the stack
        trace is logged server-side only.
        """
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(cfg: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        cfg: Settings to build the app from (defaults to the module singleton).
             Tests pass their own to exercise other pipeline orders.

    Returns:
        Fully configured FastAPI instance ready to receive requests.

    Raises:
        PipelineConfigurationError: PIPELINE_BEHAVIORS names an unknown behavior.
    """
    cfg = cfg or settings

    app = FastAPI(
        title=cfg.app_name,
        description=(
            "Creates company records through an in-process request pipeline. "
            "Ordered behaviors assign the company key and hash before the "
            "handler builds the record."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.dispatcher = build_dispatcher(cfg)

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # added CORS → AccessLog → RequestID, executes RequestID → AccessLog → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(PipelineAccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(companies.router)
    app.include_router(health.router)

    return app


# uvicorn expects `company_pipeline.main:app` to be importable
app = create_app()
