"""Core module initialization."""

from .credentials import (
    StaticTokenProvider,
    TokenCache,
    TokenProvider,
    service_account_token_fetcher,
)
from .exceptions import (
    ConfigurationError,
    GatewayError,
    InternalError,
    UpstreamError,
    ValidationError,
)
from .sse import SSEDecoder, SSEEvent, encode_sse_json
from .vertex_client import UpstreamStream, VertexClient, format_httpx_error

__all__ = [
    "ConfigurationError",
    "GatewayError",
    "InternalError",
    "SSEDecoder",
    "SSEEvent",
    "StaticTokenProvider",
    "TokenCache",
    "TokenProvider",
    "UpstreamError",
    "UpstreamStream",
    "ValidationError",
    "VertexClient",
    "encode_sse_json",
    "format_httpx_error",
    "service_account_token_fetcher",
]
