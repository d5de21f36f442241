"""Client for Claude models served by Vertex AI (``rawPredict``)."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

import httpx

from .credentials import TokenProvider
from .exceptions import UpstreamError

if TYPE_CHECKING:
    from ..config_loader import GatewaySettings
    from ..messages.types import UpstreamRequest

logger = logging.getLogger("vertex-gateway")

GLOBAL_LOCATION = "global"


def format_httpx_error(exc: Exception, url: Optional[str] = None) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)
    if url:
        parts.append(f"url={url}")
    return "; ".join(parts)


def _trimmed_body_for_log(body: dict[str, Any]) -> dict[str, Any]:
    trimmed = dict(body)
    trimmed["messages"] = f"len={len(body.get('messages') or [])}"
    if "tools" in body:
        trimmed["tools"] = f"len={len(body['tools'])}"
    if "system" in body:
        trimmed["system"] = f"len={len(body['system'])}"
    return trimmed


class UpstreamStream:
    """An open streaming response from Vertex AI.

    Owns the httpx client and response; ``aclose`` is idempotent.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response, url: str) -> None:
        self._client = client
        self._response = response
        self.url = url
        self.closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        async for chunk in self._response.aiter_bytes():
            if chunk:
                yield chunk

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        logger.debug(f"Closing stream for {self.url}")
        await self._response.aclose()
        await self._client.aclose()


class VertexClient:
    """Calls the Claude Messages endpoint of a Vertex AI project."""

    def __init__(
        self,
        settings: GatewaySettings,
        token_provider: TokenProvider,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.token_provider = token_provider
        # In-process upstreams (tests, simulations); None means the network.
        self.transport = transport

    def build_url(self, model: str, stream: bool = False) -> str:
        """Build the publisher model URL for a project/location/model."""
        location = self.settings.location
        if location == GLOBAL_LOCATION:
            host = "aiplatform.googleapis.com"
        else:
            host = f"{location}-aiplatform.googleapis.com"
        method = "streamRawPredict" if stream else "rawPredict"
        return (
            f"https://{host}/v1/projects/{self.settings.project_id}"
            f"/locations/{location}/publishers/anthropic/models/{model}:{method}"
        )

    def build_body(self, request: UpstreamRequest) -> dict[str, Any]:
        body = request.to_body(self.settings.anthropic_version)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Vertex request body (trimmed): %s", _trimmed_body_for_log(body))
        return body

    async def _headers(self) -> dict[str, str]:
        token = await self.token_provider.get_token()
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _error_from_response(response: httpx.Response, text: str) -> UpstreamError:
        return UpstreamError(
            f"Vertex API error: {response.status_code} {response.reason_phrase} - {text}",
            status_code=response.status_code,
            body=text,
        )

    async def create_message(self, request: UpstreamRequest, model: str) -> dict[str, Any]:
        """Send a non-streaming request and return the Claude message."""
        request.stream = False
        url = self.build_url(model)
        body = json.dumps(self.build_body(request), ensure_ascii=False).encode("utf-8")
        headers = await self._headers()

        logger.debug(f"Initiating non-streaming request to {url}")
        async with httpx.AsyncClient(timeout=self.settings.timeout, transport=self.transport) as client:
            resp = await client.post(url, headers=headers, content=body)

        if not resp.is_success:
            logger.warning(f"Vertex request to {url} returned error status {resp.status_code}")
            raise self._error_from_response(resp, resp.text)

        data = resp.json()
        if logger.isEnabledFor(logging.DEBUG) and isinstance(data, dict):
            logger.debug("Vertex response keys: %s", list(data.keys()))
        return data

    async def open_stream(self, request: UpstreamRequest, model: str) -> UpstreamStream:
        """Send a streaming request and return the open response.

        Error statuses are read in full and raised before any byte reaches
        the client, so they can still change the HTTP status.
        """
        request.stream = True
        url = self.build_url(model, stream=True)
        body = json.dumps(self.build_body(request), ensure_ascii=False).encode("utf-8")
        headers = await self._headers()
        timeout = self.settings.timeout
        stream_timeout = httpx.Timeout(connect=timeout, read=None, write=timeout, pool=timeout)
        client = httpx.AsyncClient(timeout=stream_timeout, transport=self.transport)
        try:
            upstream_request = client.build_request("POST", url, headers=headers, content=body)
            logger.debug(f"Sending streaming request to {url}")
            resp = await client.send(upstream_request, stream=True)
        except Exception as exc:
            logger.error(f"Failed to send streaming request to {url}: {exc} (type: {exc.__class__.__name__})")
            await client.aclose()
            raise

        if not resp.is_success:
            logger.warning(f"Streaming request to {url} returned error status {resp.status_code}")
            try:
                data = await resp.aread()
            finally:
                await resp.aclose()
                await client.aclose()
            raise self._error_from_response(resp, data.decode("utf-8", errors="replace"))

        return UpstreamStream(client, resp, url)
