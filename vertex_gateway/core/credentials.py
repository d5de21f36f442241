"""Bearer tokens for the Vertex AI upstream.

The gateway only needs ``await provider.get_token()``. ``TokenCache`` wraps a
fetch coroutine with a single cached token and an expiry watermark; refreshes
are serialized so concurrent requests never trigger duplicate network calls.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol, Sequence

logger = logging.getLogger("vertex-gateway")

CLOUD_PLATFORM_SCOPES = ("https://www.googleapis.com/auth/cloud-platform",)
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

DEFAULT_TOKEN_TTL = 30 * 60
DEFAULT_REFRESH_MARGIN = 60


class TokenProvider(Protocol):
    async def get_token(self) -> str:
        ...


class StaticTokenProvider:
    """Always returns the same token (tests, pre-issued tokens)."""

    def __init__(self, token: str) -> None:
        self._token = token

    async def get_token(self) -> str:
        return self._token


class TokenCache:
    """Get-or-refresh cache around an async token fetcher."""

    def __init__(
        self,
        fetch: Callable[[], Awaitable[str]],
        ttl: float = DEFAULT_TOKEN_TTL,
        margin: float = DEFAULT_REFRESH_MARGIN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._ttl = ttl
        self._margin = margin
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()
        self.refresh_count = 0

    def _is_fresh(self) -> bool:
        return self._token is not None and self._clock() < self._expires_at - self._margin

    async def get_token(self) -> str:
        if self._is_fresh():
            return self._token  # type: ignore[return-value]
        async with self._lock:
            # Another waiter may have refreshed while we queued on the lock.
            if self._is_fresh():
                return self._token  # type: ignore[return-value]
            token = await self._fetch()
            if not token:
                raise RuntimeError("Failed to obtain access token for Vertex AI")
            self._token = token
            self._expires_at = self._clock() + self._ttl
            self.refresh_count += 1
            logger.info("Refreshed Vertex AI access token")
            return token

    def invalidate(self) -> None:
        self._token = None
        self._expires_at = 0.0


def service_account_token_fetcher(
    client_email: Optional[str] = None,
    private_key: Optional[str] = None,
    scopes: Sequence[str] = CLOUD_PLATFORM_SCOPES,
) -> Callable[[], Awaitable[str]]:
    """Build a fetcher backed by google-auth.

    Uses the given service-account email/key when both are set, otherwise
    Application Default Credentials. Credentials are resolved on the first
    fetch. google-auth refreshes synchronously, so the refresh runs in a
    worker thread.
    """
    import google.auth
    import google.auth.transport.requests
    from google.oauth2 import service_account

    resolved: list = []

    def _credentials():
        if not resolved:
            if client_email and private_key:
                credentials = service_account.Credentials.from_service_account_info(
                    {
                        "type": "service_account",
                        "client_email": client_email,
                        "private_key": private_key,
                        "token_uri": GOOGLE_TOKEN_URI,
                    },
                    scopes=list(scopes),
                )
            else:
                credentials, _ = google.auth.default(scopes=list(scopes))
            resolved.append(credentials)
        return resolved[0]

    def _refresh() -> str:
        credentials = _credentials()
        credentials.refresh(google.auth.transport.requests.Request())
        return credentials.token

    async def fetch() -> str:
        return await asyncio.to_thread(_refresh)

    return fetch
