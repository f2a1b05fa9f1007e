# spotify-ws
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""
BroadcastHub: subscriber registry and owner of the now-playing snapshot.

Every subscriber gets its own PollLoop, but all loops feed the same hub, so
everyone sees the same snapshot and every change is fanned out to all
connected subscribers.

Wire format (JSON text frame, server → client only):

    {"type": "nowPlayingData", "data": {...song...} | null}

``data: null`` means playback stopped.
"""

import asyncio
import json
import logging

from .detector import ChangeDetector, EmitDecision
from .errors import TransportFailure
from .poller import POLL_INTERVAL, PollLoop
from .spotify.models import Song

log = logging.getLogger(__name__)

EVENT_NAME = "nowPlayingData"


def encode_event(song: Song | None) -> str:
    return json.dumps({
        "type": EVENT_NAME,
        "data": song.to_dict() if song is not None else None,
    })


class Subscription:
    """One connected subscriber: its WebSocket and its poll loop."""

    def __init__(self, ws, remote: str | None = None):
        self.ws = ws
        self.remote = remote or "unknown"
        self.loop: PollLoop | None = None
        self.active = True

    async def send(self, message: str):
        if not self.active:
            return
        try:
            await self.ws.send_str(message)
        except Exception as e:
            raise TransportFailure(self.remote, e) from e

    def __repr__(self):
        return f"<Subscription {self.remote}{'' if self.active else ' (closed)'}>"


class BroadcastHub:
    def __init__(self, client, detector: ChangeDetector | None = None,
                 interval: float = POLL_INTERVAL):
        self.client = client
        self.detector = detector or ChangeDetector()
        self.interval = interval
        self.snapshot: Song | None = None
        self._subscriptions: set[Subscription] = set()
        self._closing: set[asyncio.Task] = set()

    @property
    def subscribers(self) -> int:
        return len(self._subscriptions)

    async def subscribe(self, ws, remote: str | None = None) -> Subscription:
        """Register *ws*, replay the snapshot to it, start its poll loop."""
        sub = Subscription(ws, remote)
        self._subscriptions.add(sub)
        snapshot = self.snapshot
        log.info("Subscriber connected: %s (%d total)", sub.remote, len(self._subscriptions))

        if snapshot is not None:
            await self._deliver(sub, encode_event(snapshot))

        if sub.active:
            sub.loop = PollLoop(self.client, self, self.interval, name=f"poll[{sub.remote}]")
            sub.loop.start()
        return sub

    async def unsubscribe(self, sub: Subscription):
        """Stop the subscriber's loop and forget it. Idempotent."""
        was_registered = sub in self._subscriptions
        sub.active = False
        self._subscriptions.discard(sub)
        if sub.loop:
            await sub.loop.stop()
            sub.loop = None
        if was_registered:
            log.info("Subscriber disconnected: %s (%d remaining)",
                     sub.remote, len(self._subscriptions))

    async def publish(self, result) -> EmitDecision:
        """Run change detection on a poll result and broadcast if needed.

        The snapshot is updated before any send is awaited, so a subscriber
        joining mid-broadcast sees either the old or the new state.
        """
        decision = self.detector.should_emit(self.snapshot, result)
        self.snapshot = decision.snapshot
        if decision.emit:
            await self.emit(decision.event)
        return decision

    async def emit(self, event: Song | None):
        """Push *event* to every registered subscriber."""
        if not self._subscriptions:
            return
        message = encode_event(event)
        subs = list(self._subscriptions)
        await asyncio.gather(*(self._deliver(sub, message) for sub in subs))
        log.info("Broadcast %s to %d subscribers",
                 repr(event.title) if event else "stop", len(subs))

    async def close(self):
        """Drop every subscriber (shutdown)."""
        for sub in list(self._subscriptions):
            await self.unsubscribe(sub)
        if self._closing:
            await asyncio.gather(*self._closing)

    async def _deliver(self, sub: Subscription, message: str):
        try:
            await sub.send(message)
        except TransportFailure as e:
            log.warning("Dropping subscriber: %s", e)
            self._drop(sub)

    def _drop(self, sub: Subscription):
        # Synchronous: may run inside the failing subscriber's own tick
        sub.active = False
        self._subscriptions.discard(sub)
        if sub.loop:
            sub.loop.cancel()
            sub.loop = None
        # Closing ends the server handler, which then unsubscribes
        task = asyncio.create_task(self._close_socket(sub))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close_socket(self, sub: Subscription):
        try:
            await sub.ws.close()
        except Exception as e:
            log.debug("Closing %s failed: %s", sub.remote, e)
