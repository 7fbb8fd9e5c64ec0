"""Tests for hubwatch.api.client — HubClient."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from hubwatch.api.client import HubClient
from hubwatch.api.errors import ApiError, AuthError, NetworkError, NotFoundError

if TYPE_CHECKING:
    from pytest_httpx import HTTPXMock

BASE = "http://hub.test"


@pytest.fixture
def client() -> HubClient:
    return HubClient(BASE + "/", access_token="tok123")


class TestRequests:
    @pytest.mark.asyncio
    async def test_get_success(self, httpx_mock: HTTPXMock, client: HubClient) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/hubs", json={"hubs": []})
        assert await client.get("/api/hubs") == {"hubs": []}

    @pytest.mark.asyncio
    async def test_auth_header_sent(self, httpx_mock: HTTPXMock, client: HubClient) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/hubs", json={})
        await client.get("/api/hubs")
        request = httpx_mock.get_requests()[0]
        assert request.headers["authorization"] == "Bearer tok123"

    @pytest.mark.asyncio
    async def test_empty_body(self, httpx_mock: HTTPXMock, client: HubClient) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/x", status_code=204)
        assert await client.post("/api/x", json={"a": 1}) == {}


class TestErrors:
    @pytest.mark.asyncio
    async def test_unauthorized(self, httpx_mock: HTTPXMock, client: HubClient) -> None:
        httpx_mock.add_response(
            url=f"{BASE}/api/hubs", status_code=401, json={"detail": "Token expired"}
        )
        with pytest.raises(AuthError, match="Token expired") as exc_info:
            await client.get("/api/hubs")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_not_found(self, httpx_mock: HTTPXMock, client: HubClient) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/hubs/zzz/ports", status_code=404)
        with pytest.raises(NotFoundError):
            await client.get("/api/hubs/zzz/ports")

    @pytest.mark.asyncio
    async def test_server_error_text_body(
        self, httpx_mock: HTTPXMock, client: HubClient
    ) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/hubs", status_code=500, text="boom")
        with pytest.raises(ApiError, match="boom") as exc_info:
            await client.get("/api/hubs")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error(self, httpx_mock: HTTPXMock, client: HubClient) -> None:
        httpx_mock.add_exception(httpx.ConnectError("refused"))
        with pytest.raises(NetworkError):
            await client.get("/api/hubs")


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_adopts_token(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{BASE}/auth/login", json={"access_token": "fresh", "token_type": "bearer"}
        )
        httpx_mock.add_response(url=f"{BASE}/api/hubs", json={"hubs": []})
        async with HubClient(BASE) as client:
            assert await client.login("admin", "secret") == "fresh"
            assert client.access_token == "fresh"
            await client.get("/api/hubs")

        login, hubs = httpx_mock.get_requests()
        assert login.content == b"username=admin&password=secret"
        assert hubs.headers["authorization"] == "Bearer fresh"

    @pytest.mark.asyncio
    async def test_login_without_token(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{BASE}/auth/login", json={})
        async with HubClient(BASE) as client:
            with pytest.raises(AuthError):
                await client.login("admin", "secret")
