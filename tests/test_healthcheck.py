import pytest
from aiohttp import web

from conftest import FakeClient
from spotify_ws.healthcheck import check
from spotify_ws.lib.config import Config
from spotify_ws.server import NowPlayingServer


async def test_healthy_server_passes(aiohttp_server):
    server = NowPlayingServer(Config(endpoint="https://example.test/np"), client=FakeClient())
    running = await aiohttp_server(server.make_app())

    await check(str(running.make_url("/health")))


async def test_unhealthy_status_fails(aiohttp_server):
    async def broken(request):
        return web.Response(status=503, text="nope")

    app = web.Application()
    app.router.add_get("/health", broken)
    running = await aiohttp_server(app)

    with pytest.raises(RuntimeError, match="503"):
        await check(str(running.make_url("/health")))


async def test_unreachable_server_fails(unused_tcp_port):
    with pytest.raises(RuntimeError, match="failed"):
        await check(f"http://127.0.0.1:{unused_tcp_port}/health")
