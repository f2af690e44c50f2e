"""
Realtime-database REST client helpers.

The document store is a Firebase Realtime Database reached over its REST API:
- GET   /<path>.json  -> JSON value at path (null when absent)
- PATCH /<path>.json  -> merge children; keys may be nested paths ("a/b")
- PUT   /<path>.json  -> replace value at path

Any object with the same three coroutine methods satisfies `DocumentStore`.
"""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote

import httpx
from fastapi import Request


# Store failures are explicit and separable from other runtime errors.
class StoreError(RuntimeError):
    pass


class StoreUnavailableError(StoreError):
    pass


class StoreTimeoutError(StoreUnavailableError):
    pass


class DocumentStore(Protocol):
    async def get(self, path: str) -> Any: ...

    async def update(self, path: str, fields: dict[str, Any]) -> None: ...

    async def set(self, path: str, value: Any) -> None: ...


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def join_path(*parts: object) -> str:
    return "/".join(str(p).strip("/") for p in parts if str(p).strip("/"))


def _normalize_base_url(base_url: str) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise StoreUnavailableError("DATABASE_URL is empty.")
    return base_url.rstrip("/")


class RealtimeDatabase:
    def __init__(self, *, base_url: str, auth_token: str = "", timeout_s: float = 30.0) -> None:
        self.base_url = base_url
        self.auth_token = auth_token
        self.timeout_s = timeout_s

    def _url(self, path: str) -> str:
        return "/" + quote(join_path(path), safe="/") + ".json"

    def _params(self) -> dict[str, str]:
        return {"auth": self.auth_token} if self.auth_token else {}

    async def _request(self, method: str, path: str, *, json: Any = None) -> httpx.Response:
        base_url = _normalize_base_url(self.base_url)
        kwargs: dict[str, Any] = {"params": self._params()}
        if method != "GET":
            kwargs["json"] = json

        try:
            async with httpx.AsyncClient(base_url=base_url, timeout=self.timeout_s) as client:
                resp = await client.request(method, self._url(path), **kwargs)
        except httpx.TimeoutException as exc:
            raise StoreTimeoutError(f"Store {method} {path} timed out.") from exc
        except httpx.HTTPError as exc:
            raise StoreUnavailableError(f"Store {method} {path} failed: {exc}") from exc

        if resp.status_code != 200:
            # Avoid dumping huge bodies; include a small snippet.
            body = resp.text[:300]
            raise StoreUnavailableError(f"Store {method} {path} failed: {resp.status_code} {body}")
        return resp

    async def get(self, path: str) -> Any:
        resp = await self._request("GET", path)
        try:
            return resp.json()
        except ValueError as exc:
            raise StoreUnavailableError(f"Store GET {path} returned invalid JSON.") from exc

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        if not fields:
            return None
        await self._request("PATCH", path, json=fields)

    async def set(self, path: str, value: Any) -> None:
        await self._request("PUT", path, json=value)
