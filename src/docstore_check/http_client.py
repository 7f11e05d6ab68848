from __future__ import annotations
from typing import Any, Dict, Optional
import httpx
from .config import Settings


class HttpClient:
    """Asynchronous HTTP client wrapper for JSON APIs."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._settings = settings
        headers = {"Accept": "application/json"}
        if settings.extra_headers:
            headers.update(dict(settings.extra_headers))
        self._client = httpx.AsyncClient(
            timeout=settings.timeout_s,
            follow_redirects=True,
            headers=headers,
            verify=settings.verify_tls,
            transport=transport,
        )

    def set_bearer(self, token: str) -> None:
        self._client.headers["Authorization"] = f"bearer {token}"

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return await self._client.get(url, params=params)

    async def post_json(self, url: str, payload: Any, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return await self._client.post(url, json=payload, params=params)

    async def put_json(self, url: str, payload: Any = None, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return await self._client.put(url, json=payload, params=params)

    async def patch_json(self, url: str, payload: Any, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return await self._client.patch(url, json=payload, params=params)

    async def delete(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return await self._client.delete(url, params=params)

    async def close(self) -> None:
        await self._client.aclose()
