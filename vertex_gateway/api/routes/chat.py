"""OpenAI-compatible Chat Completions endpoint backed by Claude on Vertex AI."""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from typing import Any, AsyncIterator, Mapping

import httpx
from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.requests import ClientDisconnect

from ...config_loader import GatewaySettings
from ...core.exceptions import GatewayError, InternalError, ValidationError
from ...core.vertex_client import VertexClient, format_httpx_error
from ...messages import (
    ClaudeToChatStreamAdapter,
    UpstreamRequest,
    chat_completions_to_claude,
    claude_to_chat_completion,
)

logger = logging.getLogger("vertex-gateway")

STREAM_WITH_TOOLS_MESSAGE = (
    "Streaming with tools is not supported yet in this gateway. "
    "Please call without stream or without tools."
)


def _error_response(exc: GatewayError) -> JSONResponse:
    return JSONResponse(exc.to_response_body(), status_code=exc.status_code)


def validate_chat_request(payload: Mapping[str, Any], settings: GatewaySettings) -> str:
    """Resolve the model and reject requests the gateway cannot serve.

    Returns:
        The model id to call.

    Raises:
        ValidationError: unknown model, or streaming requested with tools.
    """
    model = payload.get("model") or settings.default_model
    if not isinstance(model, str) or model not in settings.allowed_models:
        raise ValidationError(f"Model {model} is not in allowed list")

    tools = payload.get("tools")
    if payload.get("stream") and isinstance(tools, list) and tools:
        raise ValidationError(STREAM_WITH_TOOLS_MESSAGE)
    return model


async def _stop_on_disconnect(
    request: Request, upstream: AsyncIterator[bytes]
) -> AsyncIterator[bytes]:
    """Relay upstream bytes, cancelling once the client has gone away."""
    async for chunk in upstream:
        if await request.is_disconnected():
            raise asyncio.CancelledError("client disconnected")
        yield chunk


async def _stream_chat_completion(
    request: Request,
    req_id: str,
    client: VertexClient,
    upstream_request: UpstreamRequest,
    model: str,
) -> Response:
    start_time = time.perf_counter()
    try:
        upstream = await client.open_stream(upstream_request, model)
    except GatewayError as exc:
        logger.error(f"[{req_id}] Vertex stream rejected: {exc.message}")
        return _error_response(exc)
    except httpx.HTTPError as exc:
        logger.error(f"[{req_id}] Vertex stream failed: {format_httpx_error(exc)}")
        return _error_response(InternalError("Internal Server Error"))
    except Exception as exc:
        logger.exception(f"[{req_id}] Error opening stream for model {model}: {exc}")
        return _error_response(InternalError("Internal Server Error"))

    adapter = ClaudeToChatStreamAdapter(model)
    logger.info(
        f"[{req_id}] Starting streaming response for {model}, "
        f"setup took {time.perf_counter() - start_time:.3f}s"
    )

    async def body_iterator() -> AsyncIterator[bytes]:
        try:
            async for frame in adapter.adapt_stream(
                _stop_on_disconnect(request, upstream.aiter_bytes())
            ):
                yield frame
        except asyncio.CancelledError:
            logger.info(f"[{req_id}] Streaming response cancelled by client")
            raise
        finally:
            await upstream.aclose()
            logger.info(
                f"[{req_id}] Stream finished in state {adapter.state.value}, "
                f"took {time.perf_counter() - start_time:.3f}s"
            )

    return StreamingResponse(
        body_iterator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


async def chat_completions(request: Request) -> Response:
    """POST /v1/chat/completions - OpenAI Chat Completions compatible endpoint."""
    req_id = uuid.uuid4().hex[:8]
    start_time = time.perf_counter()
    settings: GatewaySettings = request.app.state.settings
    client: VertexClient = request.app.state.vertex_client

    try:
        body = await request.body()
        payload = json.loads(body or b"{}")
    except ClientDisconnect:
        logger.warning(f"[{req_id}] Client disconnected while sending the request body")
        return Response(status_code=499)
    except json.JSONDecodeError as exc:
        logger.error(f"[{req_id}] Invalid JSON payload: {exc}")
        return _error_response(ValidationError("Invalid JSON payload"))

    if not isinstance(payload, Mapping):
        logger.error(f"[{req_id}] Payload must be a JSON object")
        return _error_response(ValidationError("Request body must be a JSON object"))

    try:
        model = validate_chat_request(payload, settings)
    except ValidationError as exc:
        logger.warning(f"[{req_id}] Rejected request: {exc.message}")
        return _error_response(exc)

    upstream_request = chat_completions_to_claude(payload)
    if upstream_request.max_tokens is None:
        upstream_request.max_tokens = settings.default_max_tokens

    is_stream = bool(payload.get("stream"))
    logger.info(
        f"[{req_id}] Chat completion request: model={model}, "
        f"messages={len(upstream_request.messages)}, stream={is_stream}"
    )

    if is_stream:
        return await _stream_chat_completion(request, req_id, client, upstream_request, model)

    try:
        message = await client.create_message(upstream_request, model)
        completion = claude_to_chat_completion(message, model)
    except GatewayError as exc:
        logger.error(f"[{req_id}] Vertex request failed: {exc.message}")
        return _error_response(exc)
    except Exception as exc:
        logger.exception(f"[{req_id}] Error processing request for model {model}: {exc}")
        return _error_response(InternalError("Internal Server Error"))

    logger.info(
        f"[{req_id}] Completed non-streaming response for {model}, "
        f"took {time.perf_counter() - start_time:.3f}s"
    )
    return JSONResponse(completion)
