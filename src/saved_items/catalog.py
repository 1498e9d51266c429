from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from .config import AppConfig
from .errors import CatalogUnavailable
from .models import SavedKey, SavedRecord, parse_key


class CatalogClient:
    def __init__(self, config: AppConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._base_url = config.catalog.base_url.rstrip("/")
        self._timeout = config.catalog.timeout_seconds
        self._headers = {"Accept": "application/json", "User-Agent": config.user_agent}
        self._transport = transport

    async def fetch_record(self, key: SavedKey) -> SavedRecord:
        parsed = parse_key(key)
        if parsed is None:
            raise CatalogUnavailable(key, "not a region:item key")
        region, item_id = parsed
        path = f"/{region}/items/{quote(item_id, safe='')}"

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            ) as client:
                resp = await client.get(path)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise CatalogUnavailable(key, f"HTTP {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            raise CatalogUnavailable(key, exc.__class__.__name__) from exc
        except httpx.InvalidURL as exc:
            raise CatalogUnavailable(key, "invalid base URL") from exc
        except ValueError as exc:
            raise CatalogUnavailable(key, "invalid JSON") from exc

        record = SavedRecord.from_dict(_extract_item(data))
        if record is None:
            raise CatalogUnavailable(key, "unexpected item shape")
        return record


def _extract_item(data: Any) -> Any:
    if isinstance(data, dict):
        for field in ("item", "topic"):
            value = data.get(field)
            if isinstance(value, dict):
                return value
    return data
