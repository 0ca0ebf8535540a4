from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

PUBLISHED_FORMAT = "%d.%m.%y %H:%M"


@dataclass
class DocItem:
    """A single document published for an event.

    ``href`` is the URL clients should open. When the PDF was downloaded
    locally it points at ``/files/...`` and ``original_href`` keeps the
    upstream URL.
    """

    event_id: int
    href: str
    title: str
    published: str  # "DD.MM.YY HH:MM" as shown on the site
    event_name: Optional[str] = None
    original_href: Optional[str] = None

    def published_at(self) -> dt.datetime | None:
        value = (self.published or "").strip()
        if not value:
            return None
        try:
            return dt.datetime.strptime(value, PUBLISHED_FORMAT)
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "eventId": self.event_id,
            "href": self.href,
            "title": self.title,
            "published": self.published,
        }
        if self.event_name is not None:
            payload["eventName"] = self.event_name
        if self.original_href:
            payload["originalHref"] = self.original_href
        return payload

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DocItem":
        return cls(
            event_id=int(raw.get("eventId") or 0),
            href=str(raw.get("href") or ""),
            title=str(raw.get("title") or ""),
            published=str(raw.get("published") or ""),
            event_name=raw.get("eventName"),
            original_href=raw.get("originalHref"),
        )


@dataclass
class EventConfig:
    base_url: str
    event_ids: List[int] = field(default_factory=list)
    event_mappings: Dict[int, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseUrl": self.base_url,
            "eventIds": list(self.event_ids),
            "eventMappings": {str(key): value for key, value in self.event_mappings.items()},
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "EventConfig":
        base_url = str(raw.get("baseUrl") or "").rstrip("/")
        if not base_url:
            raise ValueError("Config is missing baseUrl")
        event_ids = [int(value) for value in raw.get("eventIds") or []]
        mappings_raw = raw.get("eventMappings") or {}
        if not isinstance(mappings_raw, dict):
            raise ValueError("eventMappings must be an object")
        mappings = {int(key): str(value) for key, value in mappings_raw.items()}
        return cls(base_url=base_url, event_ids=event_ids, event_mappings=mappings)


@dataclass
class DocumentCache:
    timestamp: str
    data: List[DocItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "data": [item.to_dict() for item in self.data]}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DocumentCache":
        items = raw.get("data") or []
        return cls(
            timestamp=str(raw.get("timestamp") or ""),
            data=[DocItem.from_dict(item) for item in items if isinstance(item, dict)],
        )


@dataclass
class EventInfo:
    """An event discovered on the championship season page."""

    id: int
    name: str
    url: str
