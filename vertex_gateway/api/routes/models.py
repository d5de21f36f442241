"""Status and model listing endpoints - OpenAI compatible."""

import logging
import time

from fastapi import Request

from ...config_loader import GatewaySettings

logger = logging.getLogger("vertex-gateway")

PROVIDER_NAME = "vertex-claude"
MODEL_OWNER = "vertex-ai.anthropic"


async def root_status() -> dict:
    """GET / - liveness check."""
    return {
        "status": "ok",
        "provider": PROVIDER_NAME,
        "openai_compatible": True,
    }


async def list_models(request: Request) -> dict:
    """List allow-listed models in OpenAI API format.

    GET /v1/models

    Returns:
        A dictionary containing the list of available models.
    """
    logger.info("Received models list request")

    settings: GatewaySettings = request.app.state.settings
    now = int(time.time())
    models = [
        {
            "id": model_id,
            "object": "model",
            "created": now,
            "owned_by": MODEL_OWNER,
        }
        for model_id in settings.allowed_models
    ]

    return {
        "object": "list",
        "data": models
    }
