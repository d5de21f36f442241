"""OpenAI Chat Completions <-> Claude Messages translation helpers.

Provides translation between the OpenAI Chat Completions format spoken by
clients and the Claude Messages format served by Vertex AI.
"""

from .stream_adapter import (
    ClaudeToChatStreamAdapter,
    StreamState,
    adapt_claude_stream_to_chat,
)
from .translator import chat_completions_to_claude, claude_to_chat_completion
from .types import UpstreamRequest, map_stop_reason

__all__ = [
    "chat_completions_to_claude",
    "claude_to_chat_completion",
    "ClaudeToChatStreamAdapter",
    "StreamState",
    "UpstreamRequest",
    "adapt_claude_stream_to_chat",
    "map_stop_reason",
]
