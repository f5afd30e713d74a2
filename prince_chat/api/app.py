"""FastAPI application factory and configuration.

Main application entry point with lifespan management, middleware,
and router registration.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prince_chat import __version__
from prince_chat.api.gateway import create_gateway_router
from prince_chat.config import AppConfig, get_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown lifecycle.

    Closes the shared upstream client on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    config: AppConfig = app.state.config
    logger.info(f"Starting Prince Chat gateway -> {config.backend_url}")
    yield
    logger.info("Shutting down Prince Chat gateway...")
    await app.state.upstream.aclose()


def create_upstream_client(
    config: AppConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the HTTP client the gateway forwards through.

    Args:
        config: Application configuration.
        transport: Optional httpx transport (tests).

    Returns:
        AsyncClient bound to the backend origin.
    """
    return httpx.AsyncClient(
        base_url=config.backend_url,
        timeout=httpx.Timeout(config.read_timeout, connect=config.connect_timeout),
        transport=transport,
    )


def create_app(
    config: AppConfig | None = None,
    upstream_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Optional application configuration.
                Loads from environment if not provided.
        upstream_transport: Optional httpx transport for the backend client.

    Returns:
        Configured FastAPI application instance.
    """
    config = config or get_config()

    application = FastAPI(
        title="Prince Chat API",
        description=(
            "Gateway for a local Ollama server. Forwards chat and model listing "
            "requests from the browser origin to the model server, streaming "
            "NDJSON responses back unmodified."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.state.config = config
    application.state.upstream = create_upstream_client(config, upstream_transport)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    application.include_router(create_gateway_router(config.gateway_prefix))

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "prince-chat"}

    return application


app = create_app()
