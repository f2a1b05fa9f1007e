"""
Change detection between the cached snapshot and a fresh poll result.

The snapshot is ``None`` (nothing playing / never played) or a playing Song.
A paused Song counts as "not playing", same as NOT_PLAYING.  Progress
changes alone never trigger a broadcast unless realtime mode is on.
"""

import logging
from dataclasses import dataclass

from .spotify.client import QueryFailure
from .spotify.models import Song

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmitDecision:
    emit: bool
    event: Song | None = None      # payload to broadcast; None means "stopped"
    snapshot: Song | None = None   # snapshot after this decision


class ChangeDetector:
    def __init__(self, realtime: bool = False):
        self.realtime = realtime

    def should_emit(self, previous: Song | None, current) -> EmitDecision:
        """Decide whether *current* is worth broadcasting given *previous*."""
        if isinstance(current, QueryFailure):
            return EmitDecision(False, snapshot=previous)

        playing = isinstance(current, Song) and current.is_playing

        if not playing:
            if previous is None:
                return EmitDecision(False)
            log.debug("Playback stopped (was %r)", previous.title)
            return EmitDecision(True, event=None, snapshot=None)

        if previous is None:
            return EmitDecision(True, event=current, snapshot=current)

        if self.realtime or not previous.same_track(current):
            return EmitDecision(True, event=current, snapshot=current)

        return EmitDecision(False, snapshot=previous)
