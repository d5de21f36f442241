"""vertex-claude-gateway - OpenAI-compatible gateway for Claude on Vertex AI

Lets clients speaking the OpenAI Chat Completions wire format talk to Claude
models served through the Vertex AI Messages endpoint.

This module provides:
- create_app: FastAPI application factory (/, /v1/models, /v1/chat/completions)
- Request/response translation between both schemas
- Incremental SSE transcoding of streamed Claude responses

Example:
    >>> from vertex_gateway import create_app
    >>> import uvicorn
    >>> uvicorn.run(create_app(), host="0.0.0.0", port=3000)
"""

from .config_loader import GatewaySettings, assert_settings, load_config
from .logging import logger, setup_logging
from .main import create_app
from .messages import (
    ClaudeToChatStreamAdapter,
    chat_completions_to_claude,
    claude_to_chat_completion,
)

__all__ = [
    "ClaudeToChatStreamAdapter",
    "GatewaySettings",
    "assert_settings",
    "chat_completions_to_claude",
    "claude_to_chat_completion",
    "create_app",
    "load_config",
    "logger",
    "setup_logging",
]
