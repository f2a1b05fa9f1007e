import asyncio
import json

from spotify_ws.spotify.models import NOT_PLAYING


def make_payload(name="Song A", progress_ms=1000, is_playing=True,
                 album="Album A", url=None):
    """A Spotify currently-playing response with one track."""
    slug = name.lower().replace(" ", "-")
    return {
        "progress_ms": progress_ms,
        "is_playing": is_playing,
        "item": {
            "name": name,
            "duration_ms": 215000,
            "album": {
                "name": album,
                "images": [
                    {"url": f"https://i.scdn.co/image/{slug}-640"},
                    {"url": f"https://i.scdn.co/image/{slug}-300"},
                ],
                "release_date": "2021-03-05",
            },
            "artists": [
                {"name": "Artist One",
                 "external_urls": {"spotify": "https://open.spotify.com/artist/one"}},
                {"name": "Artist Two",
                 "external_urls": {"spotify": "https://open.spotify.com/artist/two"}},
            ],
            "external_urls": {"spotify": url or f"https://open.spotify.com/track/{slug}"},
        },
    }


class FakeWebSocket:
    """Stands in for aiohttp's WebSocketResponse: records what was sent."""

    def __init__(self, fail=False, on_send=None):
        self.sent = []
        self.closed = False
        self.fail = fail
        self.on_send = on_send

    async def send_str(self, message):
        if self.fail:
            raise ConnectionResetError("socket gone")
        if self.on_send:
            self.on_send(message)
        self.sent.append(json.loads(message))

    async def close(self):
        self.closed = True

    @property
    def data(self):
        return [m["data"] for m in self.sent]


class FakeClient:
    """Returns queued poll results, then NOT_PLAYING forever."""

    def __init__(self, results=()):
        self.results = list(results)
        self.calls = 0
        self.queried = asyncio.Event()

    async def query(self):
        self.calls += 1
        self.queried.set()
        if not self.results:
            return NOT_PLAYING
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class IdleClient:
    """A query that never completes: loops exist but never publish."""

    async def query(self):
        await asyncio.Event().wait()
