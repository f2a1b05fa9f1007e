"""
spotify-ws: rebroadcast Spotify "currently playing" to WebSocket subscribers.

  spotify/     — upstream token exchange, query and Song mapping
  detector.py  — decides which poll results are worth broadcasting
  hub.py       — subscribers + the shared now-playing snapshot
  poller.py    — per-subscriber poll timer
  server.py    — aiohttp HTTP/WebSocket front end
  lib/         — environment configuration
"""

__version__ = "1.0.0"
