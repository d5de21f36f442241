"""Main FastAPI application for the Vertex Claude OpenAI gateway."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import chat_completions, list_models, root_status
from .auth import ProxyKeyValidator, require_proxy_key
from .config_loader import GatewaySettings, load_config
from .core.credentials import TokenCache, TokenProvider, service_account_token_fetcher
from .core.exceptions import GatewayError
from .core.vertex_client import VertexClient
from .logging import setup_logging

logger = logging.getLogger("vertex-gateway")


def build_token_provider(settings: GatewaySettings) -> TokenProvider:
    """Default provider: google-auth service account (or ADC) behind a cache."""
    return TokenCache(
        service_account_token_fetcher(settings.client_email, settings.private_key)
    )


async def _gateway_error_handler(_request: Request, exc: GatewayError) -> JSONResponse:
    return JSONResponse(exc.to_response_body(), status_code=exc.status_code)


def create_app(
    settings: Optional[GatewaySettings] = None,
    token_provider: Optional[TokenProvider] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Factory function to create the FastAPI application.

    Args:
        settings: Resolved settings; loaded from YAML/environment when omitted.
        token_provider: Bearer token source for Vertex AI; google-auth when omitted.
        transport: httpx transport for Vertex AI calls; the network when omitted.

    Returns:
        The configured FastAPI application instance.
    """
    if settings is None:
        settings = load_config()
    setup_logging(settings.debug)

    if token_provider is None:
        token_provider = build_token_provider(settings)

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI):
        logger.info("Vertex Claude gateway starting up...")
        logger.info("Configured bind address %s:%s", settings.host, settings.port)
        logger.info(
            "Project %s, location %s, default model %s",
            settings.project_id,
            settings.location,
            settings.default_model,
        )
        logger.info(f"Allowed models: {settings.allowed_models}")
        if settings.proxy_api_key:
            logger.info("API key gate enabled for /v1")
        yield
        logger.info("Vertex Claude gateway shutting down")

    app = FastAPI(title="Vertex Claude OpenAI Gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.vertex_client = VertexClient(settings, token_provider, transport=transport)
    app.state.key_validator = ProxyKeyValidator(settings.proxy_api_key)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GatewayError, _gateway_error_handler)

    # Register routes
    gate = [Depends(require_proxy_key)]
    app.get("/")(root_status)
    app.get("/v1/models", dependencies=gate)(list_models)
    app.post("/v1/chat/completions", dependencies=gate)(chat_completions)

    logger.info("FastAPI application created")
    return app


__all__ = ["create_app", "build_token_provider"]
