"""
Currently-playing clients.

Both clients expose ``async query()`` returning one of:
  - ``Song``          — upstream reported a track
  - ``NOT_PLAYING``   — upstream answered, nothing is playing
  - ``QueryFailure``  — the fetch failed; nothing is raised

NowPlayingClient talks to the Spotify Web API with a TokenProvider and
retries once through a fresh token exchange.  EndpointClient polls a
pre-built now-playing URL (ENDPOINT mode) that already returns the
transport shape, so there is no token to refresh and no retry.
"""

import asyncio
import json
import logging
from dataclasses import dataclass

import aiohttp

from ..errors import AuthFailure
from .auth import TokenProvider
from .models import NOT_PLAYING, MalformedPayload, Song

log = logging.getLogger(__name__)

CURRENTLY_PLAYING_URL = "https://api.spotify.com/v1/me/player/currently-playing"
QUERY_TIMEOUT = aiohttp.ClientTimeout(total=10)


@dataclass(frozen=True)
class QueryFailure:
    """A failed currently-playing fetch.

    ``reauth`` is True when a fresh access token might fix it (auth errors,
    network errors, non-2xx statuses) and False for a response that arrived
    but could not be understood.
    """

    reason: str
    cause: BaseException | None = None
    reauth: bool = True


async def _get(session: aiohttp.ClientSession, url: str, headers=None):
    """GET *url* and return ``(status, body)`` or a QueryFailure."""
    try:
        async with session.get(url, headers=headers, timeout=QUERY_TIMEOUT) as resp:
            return resp.status, await resp.read()
    except asyncio.TimeoutError as e:
        return QueryFailure(f"request to {url} timed out", e)
    except aiohttp.ClientError as e:
        return QueryFailure(f"request to {url} failed: {e}", e)


def _decode(body: bytes):
    """Decode a JSON body; empty and ``null`` bodies mean nothing is playing."""
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError as e:
        raise MalformedPayload(f"response is not JSON: {e}") from e


class NowPlayingClient:
    """Spotify Web API currently-playing query with retry-once-via-reauth."""

    def __init__(self, session: aiohttp.ClientSession, tokens: TokenProvider,
                 url: str = CURRENTLY_PLAYING_URL):
        self._session = session
        self.tokens = tokens
        self.url = url

    async def query(self):
        first = await self._attempt()
        if not isinstance(first, QueryFailure) or not first.reauth:
            return first

        # Single retry: drop the token so the second attempt re-exchanges
        log.info("Currently-playing query failed (%s), re-authorising once", first.reason)
        self.tokens.invalidate()
        return await self._attempt()

    async def _attempt(self):
        try:
            token = await self.tokens.acquire()
        except AuthFailure as e:
            return QueryFailure(f"token exchange failed: {e}", e)

        result = await _get(self._session, self.url,
                            headers={"Authorization": f"Bearer {token}"})
        if isinstance(result, QueryFailure):
            return result

        status, body = result
        if status == 204:
            return NOT_PLAYING
        if not 200 <= status < 300:
            return QueryFailure(f"HTTP {status} from currently-playing")
        return self.parse(body)

    @staticmethod
    def parse(body: bytes):
        """Map a currently-playing response body to Song / NOT_PLAYING / QueryFailure."""
        try:
            payload = _decode(body)
            if payload is None:
                return NOT_PLAYING
            if not isinstance(payload, dict):
                raise MalformedPayload(f"expected an object, got {type(payload).__name__}")
            # item is null during ads, private sessions and between tracks
            if payload.get("item") is None:
                return NOT_PLAYING
            return Song.from_spotify(payload)
        except MalformedPayload as e:
            return QueryFailure(str(e), e, reauth=False)


class EndpointClient:
    """Polls a pre-built now-playing endpoint (ENDPOINT mode)."""

    def __init__(self, session: aiohttp.ClientSession, url: str):
        self._session = session
        self.url = url

    async def query(self):
        result = await _get(self._session, self.url)
        if isinstance(result, QueryFailure):
            return result

        status, body = result
        if status == 204:
            return NOT_PLAYING
        if not 200 <= status < 300:
            return QueryFailure(f"HTTP {status} from {self.url}")
        return self.parse(body)

    @staticmethod
    def parse(body: bytes):
        try:
            data = _decode(body)
            if data is None:
                return NOT_PLAYING
            if not isinstance(data, dict):
                raise MalformedPayload(f"expected an object, got {type(data).__name__}")
            if not data.get("is_playing"):
                return NOT_PLAYING
            return Song.from_dict(data)
        except MalformedPayload as e:
            return QueryFailure(str(e), e, reauth=False)
