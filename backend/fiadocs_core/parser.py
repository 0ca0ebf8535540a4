from __future__ import annotations

import hashlib
import logging
import re
from typing import Any, Iterable, List, Optional
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup

from .document import DocItem, EventInfo

logger = logging.getLogger(__name__)

FRAGMENT_MARKER = "document-type-wrapper"

# Places on the season page where event links have shown up over the years.
EVENT_LINK_SELECTORS = [
    'a[href*="/event/"]',
    'a[href*="/documents/"]',
    ".event-link",
    ".race-link",
    ".grand-prix",
    ".event-item",
    ".championship-event",
    'a[href*="event-"]',
    'a[href*="race-"]',
    'a[href*="/session/"]',
    'a[href*="/weekend/"]',
]
EVENT_DATA_ATTRIBUTES = ["data-event-id", "data-event", "data-race-id"]

_HREF_ID_RE = re.compile(r"/(\d+)(?:/|$)")
_SCRIPT_OBJECT_RE = re.compile(
    r"\{\s*(?:event_?id|id)\s*:\s*(\d+)\s*,\s*(?:name|title)\s*:\s*[\"']([^\"']+)[\"']",
    re.IGNORECASE,
)
_SCRIPT_ID_RE = re.compile(r"[\"']?(?:event_?id|id)[\"']?\s*:\s*(\d+)", re.IGNORECASE)
_SCRIPT_NAME_RE = re.compile(r"[\"']([^\"']*(?:grand\s*prix|test|practice)[^\"']*)[\"']", re.IGNORECASE)
_SCRIPT_CONTEXT = 200


def _get_text(el) -> str:
    if not el:
        return ""
    return " ".join(el.get_text(separator=" ", strip=True).split())


def extract_document_fragment(payload: Any) -> Optional[str]:
    """Return the HTML of the ``insert`` command that carries the document list."""
    if not isinstance(payload, list):
        return None
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        data = entry.get("data")
        if entry.get("command") == "insert" and isinstance(data, str) and FRAGMENT_MARKER in data:
            return data
    return None


def parse_document_rows(fragment: str, event_id: int) -> List[DocItem]:
    soup = BeautifulSoup(fragment, "lxml")
    items: List[DocItem] = []
    for row in soup.select("li.document-row"):
        link = row.select_one("a")
        if link is None:
            continue
        href = (link.get("href") or "").strip()
        title_el = link.select_one(".title")
        published_el = link.select_one(".published .date-display-single")
        if not href or title_el is None or published_el is None:
            continue
        items.append(
            DocItem(
                event_id=event_id,
                href=href,
                title=_get_text(title_el),
                published=_get_text(published_el),
            )
        )
    return items


def parse_document_list(payload: Any, event_id: int) -> List[DocItem]:
    fragment = extract_document_fragment(payload)
    if fragment is None:
        return []
    return parse_document_rows(fragment, event_id)


def absolute_url(base_url: str, href: str) -> str:
    if href.startswith(("http://", "https://")):
        return href
    base = base_url.rstrip("/")
    if href.startswith("/"):
        return f"{base}{href}"
    return f"{base}/{href}"


def document_filename(url: str) -> str:
    """Stable local filename for a downloaded document."""
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
    basename = unquote(urlparse(url).path.rsplit("/", 1)[-1])
    slug = re.sub(r"[^A-Za-z0-9._-]+", "_", basename).strip("._") or "document"
    if not slug.lower().endswith(".pdf"):
        slug = f"{slug}.pdf"
    return f"{digest}-{slug}"


class _EventCollector:
    def __init__(self) -> None:
        self.events: List[EventInfo] = []
        self._seen: set[int] = set()

    def add(self, event_id: int, name: str, url: str) -> None:
        if not event_id or event_id in self._seen:
            return
        self._seen.add(event_id)
        self.events.append(EventInfo(id=event_id, name=name, url=url))


def _events_from_links(soup: BeautifulSoup, collector: _EventCollector, site_root: str) -> None:
    for selector in EVENT_LINK_SELECTORS:
        elements = soup.select(selector)
        logger.debug("Found %d elements for selector %s", len(elements), selector)
        for element in elements:
            href = element.get("href")
            text = _get_text(element)
            if not href or not text:
                continue
            match = _HREF_ID_RE.search(href)
            if not match:
                continue
            collector.add(int(match.group(1)), text, absolute_url(site_root, href))


def _events_from_scripts(scripts: Iterable[str], collector: _EventCollector, site_root: str) -> None:
    for content in scripts:
        if not content or ("event" not in content and "race" not in content):
            continue
        for match in _SCRIPT_OBJECT_RE.finditer(content):
            event_id = int(match.group(1))
            collector.add(event_id, match.group(2), f"{site_root}/event/{event_id}")

        for match in _SCRIPT_ID_RE.finditer(content):
            event_id = int(match.group(1))
            start = max(0, match.start() - _SCRIPT_CONTEXT)
            context = content[start : match.start() + _SCRIPT_CONTEXT]
            name_match = _SCRIPT_NAME_RE.search(context)
            name = name_match.group(1) if name_match else f"Event {event_id}"
            collector.add(event_id, name, f"{site_root}/event/{event_id}")


def _events_from_data_attributes(soup: BeautifulSoup, collector: _EventCollector, site_root: str) -> None:
    selector = ", ".join(f"[{attr}]" for attr in EVENT_DATA_ATTRIBUTES)
    for element in soup.select(selector):
        raw_id = next((element.get(attr) for attr in EVENT_DATA_ATTRIBUTES if element.get(attr)), None)
        text = _get_text(element)
        if not raw_id or not text:
            continue
        try:
            event_id = int(str(raw_id).strip())
        except ValueError:
            continue
        collector.add(event_id, text, f"{site_root}/event/{event_id}")


def parse_grand_prix_events(html: str, site_root: str = "https://www.fia.com") -> List[EventInfo]:
    """Discover event IDs and names on the championship season page.

    Three sources are tried in order: event links, inline scripts, and
    ``data-*`` attributes. The first name found for an ID wins.
    """
    site_root = site_root.rstrip("/")
    collector = _EventCollector()
    try:
        soup = BeautifulSoup(html, "lxml")
        _events_from_links(soup, collector, site_root)
        _events_from_scripts((script.string or "" for script in soup.find_all("script")), collector, site_root)
        _events_from_data_attributes(soup, collector, site_root)
    except Exception:
        logger.exception("Failed to parse grand prix events page")
        return []

    logger.info("Extracted %d unique events from HTML", len(collector.events))
    return collector.events
