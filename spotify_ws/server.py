# spotify-ws
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""
NowPlayingServer: HTTP + WebSocket front end.

Routes:
    GET /         WebSocket upgrade → subscribe to nowPlayingData events.
                  Plain requests get 426 Upgrade Required.
    GET /health   200 OK (container health checks)

The server owns the shared aiohttp ClientSession used for every upstream
call, and the single BroadcastHub that holds the now-playing snapshot.
"""

import asyncio
import logging
import signal

import aiohttp
from aiohttp import WSMsgType, web

from .detector import ChangeDetector
from .hub import BroadcastHub
from .lib.config import Config
from .spotify.auth import TokenProvider
from .spotify.client import EndpointClient, NowPlayingClient

log = logging.getLogger(__name__)

USER_AGENT = "spotify-ws/1.0"
WS_HEARTBEAT = 30  # seconds between WebSocket pings


def _is_upgrade(request: web.Request) -> bool:
    return (request.headers.get("Upgrade", "").lower() == "websocket"
            and "upgrade" in request.headers.get("Connection", "").lower())


class NowPlayingServer:
    def __init__(self, config: Config, client=None):
        self.config = config
        self._client = client
        self._http_session: aiohttp.ClientSession | None = None
        self._runner: web.AppRunner | None = None
        self._ws: set[web.WebSocketResponse] = set()
        self.hub: BroadcastHub | None = None

    def build_client(self, session: aiohttp.ClientSession):
        """Pick the upstream client for the configured deployment mode."""
        if self.config.endpoint_mode:
            log.info("ENDPOINT mode: polling %s", self.config.endpoint)
            return EndpointClient(session, self.config.endpoint)
        tokens = TokenProvider(session, self.config.client_id,
                               self.config.client_secret, self.config.refresh_token)
        return NowPlayingClient(session, tokens)

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self._handle_root)
        app.router.add_get("/health", self._handle_health)
        app.on_startup.append(self._on_startup)
        app.on_shutdown.append(self._on_shutdown)
        app.on_cleanup.append(self._on_cleanup)
        return app

    # ── Lifecycle ──

    async def _on_startup(self, app):
        self._http_session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
        client = self._client or self.build_client(self._http_session)
        self.hub = BroadcastHub(client, ChangeDetector(realtime=self.config.realtime),
                                interval=self.config.poll_interval)
        if self.config.realtime:
            log.info("Realtime mode: broadcasting every tick while playing")

    async def _on_shutdown(self, app):
        if self.hub:
            await self.hub.close()
        for ws in list(self._ws):
            await ws.close(code=aiohttp.WSCloseCode.GOING_AWAY, message=b"Server shutdown")
        self._ws.clear()

    async def _on_cleanup(self, app):
        if self._http_session:
            await self._http_session.close()
            self._http_session = None

    async def start(self):
        self._runner = web.AppRunner(self.make_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, "0.0.0.0", self.config.port)
        await site.start()
        log.info("spotify-ws started: %s:%d", self.config.host, self.config.port)

    async def run(self):
        """Convenience entry-point: start + wait for signal + stop."""
        await self.start()
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)
        try:
            await stop_event.wait()
            log.info("Shutdown signal received")
        finally:
            await self.shutdown()

    async def shutdown(self):
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        log.info("Server shut down")

    # ── Route handlers ──

    def _origin_allowed(self, origin: str) -> bool:
        allowed = self.config.allowed_origins
        return not allowed or origin in allowed

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.Response(text="OK")

    async def _handle_root(self, request: web.Request) -> web.StreamResponse:
        if not _is_upgrade(request):
            return web.Response(
                status=426, text="Upgrade Required",
                headers={"Upgrade": "websocket", "Connection": "Upgrade"})

        origin = request.headers.get("Origin", "")
        if not self._origin_allowed(origin):
            log.warning("Origin %r not allowed, rejecting connection", origin)
            raise web.HTTPForbidden(text="Origin not allowed")

        ws = web.WebSocketResponse(heartbeat=WS_HEARTBEAT)
        await ws.prepare(request)
        self._ws.add(ws)

        sub = await self.hub.subscribe(ws, remote=request.remote)
        try:
            # Push-only: client messages are read (to notice disconnects) and ignored
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    log.warning("WebSocket error from %s: %s", sub.remote, ws.exception())
        finally:
            await self.hub.unsubscribe(sub)
            self._ws.discard(ws)

        return ws
