from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

SavedKey = str

_KEY_RE = re.compile(r"^([a-z]{2}):(.+)$")


def build_key(region: str, item_id: str) -> SavedKey:
    return f"{region}:{item_id}"


def parse_key(key: SavedKey) -> tuple[str, str] | None:
    """Split a saved key into ``(region, item_id)``; ``None`` if it is not hydratable."""
    if not isinstance(key, str):
        return None
    match = _KEY_RE.match(key)
    if not match:
        return None
    return match.group(1), match.group(2)


@dataclass(slots=True)
class SavedRecord:
    item_id: str
    region: str
    title: str
    category: str | None = None
    importance_score: float = 0.0
    source_count: int = 0
    source_domain: str | None = None
    source_name: str | None = None
    last_seen_at: str | None = None
    last_source_published_at: str | None = None
    high_arousal: bool = False
    distress_score: float | None = None
    summary: str | None = None
    summary_updated_at: str | None = None

    @property
    def key(self) -> SavedKey:
        return build_key(self.region, self.item_id)

    @property
    def published_ts(self) -> float | None:
        return _timestamp(self.last_source_published_at)

    @classmethod
    def from_dict(cls, data: Any) -> SavedRecord | None:
        if not isinstance(data, dict):
            return None
        item_id = _to_str(data.get("item_id")) or _to_str(data.get("topic_id"))
        region = _to_str(data.get("region")) or _to_str(data.get("country"))
        if not item_id or not region:
            return None
        return cls(
            item_id=item_id,
            region=region,
            title=_to_str(data.get("title")) or "",
            category=_to_str(data.get("category")),
            importance_score=_to_float(data.get("importance_score")) or 0.0,
            source_count=_to_int(data.get("source_count")),
            source_domain=_to_str(data.get("source_domain")),
            source_name=_to_str(data.get("source_name")),
            last_seen_at=_to_str(data.get("last_seen_at")),
            last_source_published_at=_to_str(data.get("last_source_published_at")),
            high_arousal=bool(data.get("high_arousal")),
            distress_score=_to_float(data.get("distress_score")),
            summary=_to_str(data.get("summary")),
            summary_updated_at=_to_str(data.get("summary_updated_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "region": self.region,
            "title": self.title,
            "category": self.category,
            "importance_score": self.importance_score,
            "source_count": self.source_count,
            "source_domain": self.source_domain,
            "source_name": self.source_name,
            "last_seen_at": self.last_seen_at,
            "last_source_published_at": self.last_source_published_at,
            "high_arousal": self.high_arousal,
            "distress_score": self.distress_score,
            "summary": self.summary,
            "summary_updated_at": self.summary_updated_at,
        }


def sort_by_recency(records: list[SavedRecord]) -> list[SavedRecord]:
    # sorted() is stable: ties keep key-store order; undated records go last
    return sorted(records, key=_recency_key, reverse=True)


def _recency_key(record: SavedRecord) -> tuple[bool, float]:
    ts = record.published_ts
    return (ts is not None, ts or 0.0)


def _timestamp(value: str | None) -> float | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def _to_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    return str(value).strip() or None


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> int:
    number = _to_float(value)
    if number is None or not math.isfinite(number):
        return 0
    return int(number)
