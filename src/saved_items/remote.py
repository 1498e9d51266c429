from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable
from urllib.parse import quote

import httpx

from .config import AppConfig
from .errors import RemoteUnavailable
from .models import SavedKey

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]

_RETRY_STATUSES = {429, 500, 502, 503, 504}


class RemoteSavedSetClient:
    """Authenticated saved-set API: list, import, add and remove keys."""

    def __init__(
        self,
        config: AppConfig,
        token_provider: TokenProvider,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = config.remote.base_url.rstrip("/")
        self._timeout = config.remote.timeout_seconds
        self._retries = max(0, config.remote.retry_max)
        self._backoff = max(0.0, config.remote.retry_backoff_seconds)
        self._user_agent = config.user_agent
        self._token_provider = token_provider
        self._transport = transport

    async def list_keys(self) -> list[SavedKey]:
        data = await self._request("GET", "/me/saved-items")
        return _extract_keys(data)

    async def import_keys(self, keys: list[SavedKey]) -> list[SavedKey]:
        data = await self._request("POST", "/me/saved-items/import", json={"keys": list(keys)})
        return _extract_keys(data)

    async def add_key(self, key: SavedKey) -> None:
        await self._request("POST", f"/me/saved-items/{_quote_key(key)}", json={})

    async def remove_key(self, key: SavedKey) -> None:
        await self._request("DELETE", f"/me/saved-items/{_quote_key(key)}")

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        token = self._token_provider()
        if not token:
            raise RemoteUnavailable("no user token")
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {token}",
            "User-Agent": self._user_agent,
        }
        last_error: RemoteUnavailable | None = None

        for attempt in range(self._retries + 1):
            try:
                async with httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=self._timeout,
                    headers=headers,
                    transport=self._transport,
                ) as client:
                    resp = await client.request(method, path, json=json)
                    resp.raise_for_status()
                    if not resp.content:
                        return None
                    return resp.json()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                last_error = RemoteUnavailable(f"{method} {path}: HTTP {status}", status=status)
                if status in _RETRY_STATUSES and attempt < self._retries:
                    await asyncio.sleep(self._backoff * (2**attempt))
                    continue
                raise last_error from exc
            except httpx.RequestError as exc:
                last_error = RemoteUnavailable(f"{method} {path}: {exc.__class__.__name__}")
                if attempt < self._retries:
                    await asyncio.sleep(self._backoff * (2**attempt))
                    continue
                raise last_error from exc
            except httpx.InvalidURL as exc:
                raise RemoteUnavailable(f"{method} {path}: invalid base URL") from exc
            except ValueError as exc:
                raise RemoteUnavailable(f"{method} {path}: invalid JSON") from exc

        if last_error:
            raise last_error
        raise RemoteUnavailable(f"{method} {path}: request failed")


def _extract_keys(data: Any) -> list[SavedKey]:
    if not isinstance(data, dict) or not isinstance(data.get("keys"), list):
        raise RemoteUnavailable("response has no keys array")
    return [key for key in data["keys"] if isinstance(key, str) and key]


def _quote_key(key: SavedKey) -> str:
    return quote(key, safe="")
