"""
Spotify access-token management: the one place that talks to the token endpoint.

TokenProvider trades the long-lived refresh token for a short-lived access
token and caches it in memory.  It never retries on its own: callers decide
whether a failure is worth a second exchange (see client.NowPlayingClient).

Usage:
    provider = TokenProvider(session, client_id, client_secret, refresh_token)
    token = await provider.acquire()   # cached, or exchanged on demand
    provider.invalidate()              # next acquire() re-exchanges
"""

import asyncio
import json
import logging
import time

import aiohttp

from ..errors import AuthFailure

log = logging.getLogger(__name__)

TOKEN_URL = "https://accounts.spotify.com/api/token"
TOKEN_TIMEOUT = aiohttp.ClientTimeout(total=10)
EXPIRY_MARGIN = 300  # refresh this many seconds before Spotify says it expires


class TokenProvider:
    """Caches a Spotify access token obtained via the refresh-token grant."""

    def __init__(self, session: aiohttp.ClientSession, client_id: str,
                 client_secret: str, refresh_token: str, token_url: str = TOKEN_URL):
        self._session = session
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self.token_url = token_url
        self._access_token: str | None = None
        self._token_expiry = 0.0
        self.revoked = False
        self.exchanges = 0

    @property
    def has_token(self) -> bool:
        return bool(self._access_token) and time.monotonic() < self._token_expiry

    async def acquire(self) -> str:
        """Return a usable access token, exchanging the refresh token if needed.

        Raises AuthFailure if the exchange is rejected or unreachable.
        """
        if self.has_token:
            return self._access_token
        return await self._exchange()

    def invalidate(self):
        """Drop the cached token so the next acquire() performs an exchange."""
        if self._access_token:
            log.debug("Access token invalidated")
        self._access_token = None
        self._token_expiry = 0.0

    async def _exchange(self) -> str:
        form = {
            "grant_type": "refresh_token",
            "refresh_token": self._refresh_token,
            "client_id": self._client_id,
            "client_secret": self._client_secret,
        }
        self.exchanges += 1

        try:
            async with self._session.post(
                self.token_url, data=form, timeout=TOKEN_TIMEOUT,
            ) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    error = self._error_code(body)
                    if resp.status == 400 and error == "invalid_grant":
                        self._mark_revoked()
                    raise AuthFailure(
                        f"Token exchange rejected (HTTP {resp.status})",
                        status=resp.status, error=error)
                result = await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise AuthFailure("Token exchange timed out") from e
        except aiohttp.ClientError as e:
            raise AuthFailure(f"Token exchange failed: {e}") from e
        except ValueError as e:
            raise AuthFailure("Token endpoint returned invalid JSON") from e

        if not isinstance(result, dict) or not result.get("access_token"):
            raise AuthFailure("Token response has no access_token")

        try:
            expires_in = int(result.get("expires_in", 3600))
        except (TypeError, ValueError) as e:
            raise AuthFailure(
                f"Token response has invalid expires_in: {result.get('expires_in')!r}") from e
        self._access_token = result["access_token"]
        lifetime = expires_in - EXPIRY_MARGIN if expires_in > EXPIRY_MARGIN else expires_in
        self._token_expiry = time.monotonic() + lifetime
        self.revoked = False

        # Spotify may rotate the refresh token; keep the new one for next time
        new_rt = result.get("refresh_token")
        if new_rt and new_rt != self._refresh_token:
            self._refresh_token = new_rt
            log.info("Refresh token rotated")

        log.info("Access token refreshed (expires in %ds)", expires_in)
        return self._access_token

    @staticmethod
    def _error_code(body: str) -> str:
        try:
            data = json.loads(body)
        except ValueError:
            return ""
        if isinstance(data, dict):
            return str(data.get("error", ""))
        return ""

    def _mark_revoked(self):
        """Flag that Spotify no longer accepts our refresh token."""
        self.revoked = True
        log.error("Spotify refresh token revoked — new REFRESH_TOKEN required")
