import time

import aiohttp
import pytest
from aioresponses import aioresponses
from yarl import URL

from spotify_ws.errors import AuthFailure
from spotify_ws.spotify.auth import TOKEN_URL, TokenProvider


@pytest.fixture
def mock_http():
    with aioresponses() as m:
        yield m


@pytest.fixture
async def session():
    async with aiohttp.ClientSession() as s:
        yield s


@pytest.fixture
def provider(session):
    return TokenProvider(session, "client-id", "client-secret", "refresh-1")


def sent_forms(mock_http):
    return [call.kwargs["data"] for call in mock_http.requests[("POST", URL(TOKEN_URL))]]


async def test_acquire_exchanges_once_then_caches(mock_http, provider):
    mock_http.post(TOKEN_URL, payload={"access_token": "tok-1", "expires_in": 3600})

    assert await provider.acquire() == "tok-1"
    assert await provider.acquire() == "tok-1"
    assert provider.exchanges == 1
    assert sent_forms(mock_http) == [{
        "grant_type": "refresh_token",
        "refresh_token": "refresh-1",
        "client_id": "client-id",
        "client_secret": "client-secret",
    }]


async def test_invalidate_forces_new_exchange(mock_http, provider):
    mock_http.post(TOKEN_URL, payload={"access_token": "tok-1"})
    mock_http.post(TOKEN_URL, payload={"access_token": "tok-2"})

    assert await provider.acquire() == "tok-1"
    provider.invalidate()
    assert not provider.has_token
    assert await provider.acquire() == "tok-2"
    assert provider.exchanges == 2


async def test_rotated_refresh_token_is_used_next_time(mock_http, provider):
    mock_http.post(TOKEN_URL, payload={"access_token": "tok-1", "refresh_token": "refresh-2"})
    mock_http.post(TOKEN_URL, payload={"access_token": "tok-2"})

    await provider.acquire()
    provider.invalidate()
    await provider.acquire()

    assert [form["refresh_token"] for form in sent_forms(mock_http)] == ["refresh-1", "refresh-2"]


async def test_invalid_grant_marks_revoked(mock_http, provider):
    mock_http.post(TOKEN_URL, status=400, payload={"error": "invalid_grant"})

    with pytest.raises(AuthFailure) as exc_info:
        await provider.acquire()

    assert exc_info.value.status == 400
    assert exc_info.value.error == "invalid_grant"
    assert provider.revoked
    assert not provider.has_token


async def test_server_error_is_auth_failure_without_revoking(mock_http, provider):
    mock_http.post(TOKEN_URL, status=503, body="upstream down")

    with pytest.raises(AuthFailure):
        await provider.acquire()
    assert not provider.revoked


async def test_network_error_is_auth_failure(mock_http, provider):
    mock_http.post(TOKEN_URL, exception=aiohttp.ClientConnectionError("connection refused"))

    with pytest.raises(AuthFailure):
        await provider.acquire()


async def test_response_without_access_token_is_auth_failure(mock_http, provider):
    mock_http.post(TOKEN_URL, payload={"token_type": "Bearer"})

    with pytest.raises(AuthFailure):
        await provider.acquire()


@pytest.mark.parametrize("expires_in", [None, "soon", [3600]])
async def test_unusable_expiry_is_auth_failure(mock_http, provider, expires_in):
    mock_http.post(TOKEN_URL, payload={"access_token": "tok-1", "expires_in": expires_in})

    with pytest.raises(AuthFailure, match="expires_in"):
        await provider.acquire()
    assert not provider.has_token


async def test_no_internal_retry(mock_http, provider):
    mock_http.post(TOKEN_URL, status=500)
    mock_http.post(TOKEN_URL, payload={"access_token": "tok-1"})

    with pytest.raises(AuthFailure):
        await provider.acquire()
    assert provider.exchanges == 1


async def test_expired_token_is_refreshed(mock_http, provider):
    mock_http.post(TOKEN_URL, payload={"access_token": "tok-1", "expires_in": 3600})
    mock_http.post(TOKEN_URL, payload={"access_token": "tok-2", "expires_in": 3600})

    assert await provider.acquire() == "tok-1"
    provider._token_expiry = time.monotonic() - 1
    assert await provider.acquire() == "tok-2"
