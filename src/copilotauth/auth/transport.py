"""Thin async transport over httpx — the only two request shapes the flow needs."""

from __future__ import annotations

from typing import Any

import httpx

from copilotauth.auth.errors import TransportError
from copilotauth.config import REQUEST_TIMEOUT


class Transport:
    """Form POSTs to GitHub OAuth and bearer GETs to the Copilot endpoints.

    Responses are returned whatever their status; interpreting them is the
    caller's job. Pass an ``httpx.AsyncClient`` (e.g. one built on
    ``httpx.MockTransport``) or use the transport as an async context
    manager to let it own a client.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "Transport":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def post_form(self, url: str, data: dict[str, str]) -> httpx.Response:
        client = self._require_client()
        try:
            return await client.post(
                url, data=data, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as e:
            raise TransportError(f"POST {url} failed: {e}") from e

    async def get_bearer(
        self,
        url: str,
        token: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        client = self._require_client()
        h = {"Authorization": f"Bearer {token}"}
        if headers:
            h.update(headers)
        try:
            return await client.get(url, headers=h)
        except httpx.HTTPError as e:
            raise TransportError(f"GET {url} failed: {e}") from e

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Transport used outside of `async with`")
        return self._client
