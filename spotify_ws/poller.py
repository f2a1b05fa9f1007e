# spotify-ws
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""
PollLoop: a per-subscription fixed-rate timer.

Each tick asks the client for the current song and hands the result to the
hub, which runs change detection and broadcasts.  The first tick fires as
soon as the task is scheduled, then every interval after that.  Ticks of the
same loop never overlap, but loops of different subscribers interleave
freely (the hub snapshot is last-write-wins).
"""

import asyncio
import logging

from .spotify.client import QueryFailure

log = logging.getLogger(__name__)

POLL_INTERVAL = 3  # seconds between now-playing polls


class PollLoop:
    def __init__(self, client, hub, interval: float = POLL_INTERVAL, name: str = "poll"):
        self.client = client
        self.hub = hub
        self.interval = interval
        self.name = name
        self.ticks = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)
        log.debug("%s: started (every %.1fs)", self.name, self.interval)

    def cancel(self):
        """Cancel without waiting. Safe to call from inside a tick."""
        if self._task:
            self._task.cancel()
            self._task = None

    async def stop(self):
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        if task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.debug("%s: stopped after %d ticks", self.name, self.ticks)

    async def _run(self):
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            await self.tick()
            # An overrunning tick pushes the schedule back instead of bunching up
            next_tick = max(next_tick + self.interval, loop.time())
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    async def tick(self):
        """One unit of work: query → detect → broadcast. Never raises."""
        self.ticks += 1
        try:
            result = await self.client.query()
        except Exception:
            log.exception("%s: now-playing query crashed", self.name)
            return

        if isinstance(result, QueryFailure):
            log.warning("%s: now-playing query failed: %s", self.name, result.reason)
            return

        try:
            # Shielded so cancelling this loop never cuts a broadcast in half
            await asyncio.shield(self.hub.publish(result))
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("%s: broadcast failed", self.name)
