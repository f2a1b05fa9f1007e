"""
Now-playing value types and the Spotify payload mapping.

A ``Song`` is built once per poll and never mutated; the next poll produces
a brand-new instance.  ``Song.to_dict()`` is the shape pushed to WebSocket
subscribers and ``Song.from_dict()`` reads the same shape back (used by the
ENDPOINT deployment mode, whose upstream already speaks it).

Spotify → Song mapping:
    progress_ms                     → progress
    item.duration_ms                → duration
    item.name                       → title
    item.external_urls.spotify      → url
    item.album.{name,release_date}  → album.{name,release_date}
    item.album.images[0].url        → album.image (None if no images)
    item.artists[*].name            → artists.name
    item.artists[*].external_urls   → artists.url
    is_playing                      → is_playing
"""

from dataclasses import dataclass

PLATFORM = "spotify"


class MalformedPayload(ValueError):
    """Upstream JSON did not have the expected shape."""


class _NotPlaying:
    """Sentinel for "upstream answered, nothing is playing"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "NOT_PLAYING"

    def __bool__(self):
        return False


NOT_PLAYING = _NotPlaying()


@dataclass(frozen=True)
class Album:
    name: str
    image: str | None
    release_date: str

    def to_dict(self) -> dict:
        return {"name": self.name, "image": self.image, "release_date": self.release_date}


@dataclass(frozen=True)
class Artists:
    name: tuple[str, ...]
    url: tuple[str, ...]

    def to_dict(self) -> dict:
        return {"name": list(self.name), "url": list(self.url)}


@dataclass(frozen=True)
class Song:
    title: str
    duration: int
    progress: int
    is_playing: bool
    album: Album
    artists: Artists
    url: str

    def same_track(self, other: "Song") -> bool:
        """True if *other* is the same track, ignoring playback position."""
        return (self.title == other.title
                and self.url == other.url
                and self.album == other.album)

    def to_dict(self) -> dict:
        return {
            "progress": self.progress,
            "album": self.album.to_dict(),
            "artists": self.artists.to_dict(),
            "url": self.url,
            "title": self.title,
            "duration": self.duration,
            "is_playing": self.is_playing,
        }

    @classmethod
    def from_spotify(cls, payload: dict) -> "Song":
        """Map a currently-playing response with a non-null ``item``."""
        try:
            item = payload["item"]
            album = item["album"]
            images = album.get("images") or []
            artists = item.get("artists") or []
            return cls(
                title=str(item["name"]),
                duration=int(item["duration_ms"]),
                progress=int(payload.get("progress_ms") or 0),
                is_playing=bool(payload.get("is_playing", False)),
                album=Album(
                    name=str(album["name"]),
                    image=images[0].get("url") if images else None,
                    release_date=str(album.get("release_date", "")),
                ),
                artists=Artists(
                    name=tuple(str(a["name"]) for a in artists),
                    url=tuple(str(a.get("external_urls", {}).get(PLATFORM, ""))
                              for a in artists),
                ),
                url=str(item.get("external_urls", {}).get(PLATFORM, "")),
            )
        except (KeyError, TypeError, ValueError, AttributeError, IndexError) as e:
            raise MalformedPayload(f"unexpected currently-playing payload: {e!r}") from e

    @classmethod
    def from_dict(cls, data: dict) -> "Song":
        """Inverse of ``to_dict``."""
        try:
            album = data["album"]
            artists = data["artists"]
            return cls(
                title=str(data["title"]),
                duration=int(data["duration"]),
                progress=int(data.get("progress") or 0),
                is_playing=bool(data["is_playing"]),
                album=Album(
                    name=str(album["name"]),
                    image=album.get("image"),
                    release_date=str(album.get("release_date", "")),
                ),
                artists=Artists(
                    name=tuple(str(n) for n in artists["name"]),
                    url=tuple(str(u) for u in artists["url"]),
                ),
                url=str(data["url"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MalformedPayload(f"unexpected now-playing payload: {e!r}") from e
