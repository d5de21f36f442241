"""Optional API key gate for the ``/v1`` endpoints."""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Request

from ..core.exceptions import GatewayError

logger = logging.getLogger("vertex-gateway")


class ProxyKeyValidator:
    """Checks ``Authorization: Bearer <key>`` against the configured proxy key."""

    def __init__(self, api_key: Optional[str]) -> None:
        self._api_key = api_key or None

    def is_enabled(self) -> bool:
        return self._api_key is not None

    def validate_request(self, request: Request) -> None:
        """Validate an incoming request.

        Raises:
            GatewayError: 401 when the gate is enabled and the key is missing or wrong.
        """
        if self._api_key is None:
            return

        auth_header = request.headers.get("Authorization", "")
        provided_key = None
        if auth_header.startswith("Bearer "):
            provided_key = auth_header[len("Bearer "):]

        # Use constant-time comparison to prevent timing attacks
        if not provided_key or not hmac.compare_digest(provided_key, self._api_key):
            logger.warning("Request rejected: invalid API key")
            raise GatewayError(
                "Invalid API key",
                status_code=401,
                error_type="invalid_request_error",
            )


async def require_proxy_key(request: Request) -> None:
    """FastAPI dependency enforcing the gate configured on the app."""
    validator: ProxyKeyValidator = request.app.state.key_validator
    validator.validate_request(request)
