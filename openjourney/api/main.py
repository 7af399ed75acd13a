"""Main FastAPI application for Openjourney."""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables using centralized loader
from openjourney.core.env_loader import ensure_env_loaded
ensure_env_loaded()

from openjourney import __version__
from openjourney.api.config import ServerSettings, get_server_settings
from openjourney.api.deps import AppServices, limiter
from openjourney.api.routers import generations, providers, settings
from openjourney.core.config import OpenjourneyConfig, load_config
from openjourney.core.exceptions import FailureKind, OpenjourneyError
from openjourney.core.logging_config import get_logger
from openjourney.core.settings import JsonFileStore, KeyValueStore, MemoryStore, SettingsContext
from openjourney.generation.notifications import NotificationCenter
from openjourney.generation.samples import create_sample_generations
from openjourney.generation.timeline import GenerationTimeline
from openjourney.generation.workflows import GenerationWorkflows
from openjourney.providers.gateway import ProviderGateway

logger = get_logger("api.main")

FAILURE_STATUS_CODES = {
    FailureKind.MISSING_CREDENTIALS: 401,
    FailureKind.INVALID_INPUT: 400,
    FailureKind.UNSUPPORTED_SOURCE: 422,
    FailureKind.NO_CONTENT_GENERATED: 502,
    FailureKind.PROVIDER_ERROR: 500,
    FailureKind.GENERATION_TIMEOUT: 408,
    FailureKind.CANCELLED: 409,
    FailureKind.CONFIGURATION: 500,
}


async def openjourney_error_handler(request: Request, exc: OpenjourneyError) -> JSONResponse:
    """Render failures as {success: false, error, details, kind}."""
    status_code = FAILURE_STATUS_CODES.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(f"{request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.url.path} rejected: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": exc.message,
            "details": type(exc).__name__,
            "kind": exc.kind.value,
        },
    )


def build_services(
    config: OpenjourneyConfig,
    store: KeyValueStore,
    http_client: httpx.AsyncClient,
    use_env_credentials: bool = True,
) -> AppServices:
    """Wire the settings context, gateway, timeline and workflows together."""
    context = SettingsContext(store, use_env=use_env_credentials)
    gateway = ProviderGateway(settings=context, config=config, http_client=http_client)
    timeline = GenerationTimeline()
    if config.generation.seed_samples:
        timeline.seed(create_sample_generations())
    notifications = NotificationCenter()
    workflows = GenerationWorkflows(
        timeline,
        gateway,
        settings=context,
        config=config,
        notifications=notifications,
    )
    return AppServices(
        config=config,
        settings=context,
        gateway=gateway,
        timeline=timeline,
        workflows=workflows,
        notifications=notifications,
        sleep=asyncio.sleep,
    )


def create_app(
    config: Optional[OpenjourneyConfig] = None,
    settings_store: Optional[KeyValueStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    server_settings: Optional[ServerSettings] = None,
) -> FastAPI:
    """Build the Openjourney API application."""
    server_settings = server_settings or get_server_settings()
    config = config or load_config(server_settings.config_file)

    if settings_store is None:
        if server_settings.settings_file:
            settings_store = JsonFileStore(server_settings.settings_file)
        else:
            settings_store = MemoryStore()

    owns_http = http_client is None
    http_client = http_client or httpx.AsyncClient()
    services = build_services(
        config, settings_store, http_client, server_settings.use_env_credentials
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Openjourney API...")
        yield
        logger.info("Shutting down Openjourney API...")
        await services.workflows.cancel_all()
        if owns_http:
            await http_client.aclose()

    app = FastAPI(
        title="Openjourney API",
        description="API for MidJourney-style image and video generation",
        version=__version__,
        lifespan=lifespan,
    )

    # Add rate limiter to app state
    limiter.enabled = server_settings.rate_limit_enabled
    app.state.limiter = limiter
    app.state.services = services
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(OpenjourneyError, openjourney_error_handler)

    # CORS middleware for web UI
    app.add_middleware(
        CORSMiddleware,
        allow_origins=server_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(providers.router, prefix="/api", tags=["providers"])
    app.include_router(generations.router, prefix="/api", tags=["generations"])
    app.include_router(settings.router, prefix="/api/settings", tags=["settings"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Openjourney API", "version": __version__}

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "pendingGenerations": len(services.timeline.pending_ids()),
        }

    return app


app = create_app()


def start_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Start the FastAPI server."""
    uvicorn.run(
        "openjourney.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="warning",  # Suppress INFO logs for each request
    )


if __name__ == "__main__":
    start_server()
