"""Async HTTP client for the hub server REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from hubwatch.api.errors import ApiError, AuthError, NetworkError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class HubClient:
    """Thin wrapper around :class:`httpx.AsyncClient` with bearer auth.

    Usage::

        async with HubClient("http://hub-server:8080", access_token=tok) as client:
            hubs = await client.get("/api/hubs")
    """

    def __init__(
        self,
        base_url: str,
        *,
        access_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._access_token = access_token
        headers: dict[str, str] = {}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
        )

    @property
    def access_token(self) -> str | None:
        return self._access_token

    def set_access_token(self, token: str) -> None:
        self._access_token = token
        self._client.headers["Authorization"] = f"Bearer {token}"

    async def __aenter__(self) -> HubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(
        self,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        return await self._request("POST", path, json=json, data=data)

    async def login(self, username: str, password: str) -> str:
        """Exchange username/password for an access token and adopt it."""
        response = await self._send(
            "POST",
            "/auth/login",
            data={"username": username, "password": password},
        )
        body = self._handle(response)
        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise AuthError("Login response did not include an access token")
        self.set_access_token(token)
        return str(token)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._send(method, path, **kwargs)
        return self._handle(response)

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, path)
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

    @staticmethod
    def _handle(response: httpx.Response) -> Any:
        status = response.status_code
        if status < 400:
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as exc:
                raise ApiError(
                    f"Malformed JSON response from {response.request.url.path}",
                    status_code=status,
                ) from exc

        detail = _error_detail(response)
        if status in (401, 403):
            raise AuthError(detail or "Not authorized", status_code=status)
        if status == 404:
            raise NotFoundError(detail or "Not found", status_code=status)
        raise ApiError(detail or f"HTTP {status}", status_code=status)


def _error_detail(response: httpx.Response) -> str:
    """Best-effort ``detail`` string from an error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error") or body.get("message")
        if detail is not None:
            return str(detail)
    return str(body)
