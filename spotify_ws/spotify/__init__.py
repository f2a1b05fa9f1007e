"""
Spotify upstream: token exchange, currently-playing query, Song mapping.

  auth.py    — TokenProvider (refresh-token grant, in-memory cache)
  client.py  — NowPlayingClient (Web API) and EndpointClient (ENDPOINT mode)
  models.py  — Song / Album / Artists value types and NOT_PLAYING
"""

from .auth import TokenProvider
from .client import EndpointClient, NowPlayingClient, QueryFailure
from .models import NOT_PLAYING, Album, Artists, MalformedPayload, Song

__all__ = [
    "TokenProvider",
    "NowPlayingClient",
    "EndpointClient",
    "QueryFailure",
    "NOT_PLAYING",
    "Album",
    "Artists",
    "MalformedPayload",
    "Song",
]
