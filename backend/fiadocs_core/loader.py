from __future__ import annotations

import datetime as dt
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import httpx

from .document import DocItem, DocumentCache, EventConfig, EventInfo
from .parser import absolute_url, document_filename, parse_document_list

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Upgrade-Insecure-Requests": "1",
}
UNKNOWN_EVENT = "Unknown Event"
FILES_PREFIX = "/files"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


class DataStore:
    """Owns the event config, the document cache and the upstream fetches."""

    def __init__(
        self,
        data_dir: Path | None = None,
        config_path: Path | None = None,
        cache_path: Path | None = None,
        request_timeout: float | None = None,
        request_delay: float | None = None,
        download_documents: bool | None = None,
    ) -> None:
        """Initialize the DataStore.

        Args:
            data_dir: Directory holding config.json, cache.json and downloads
            config_path: Override for the event config file
            cache_path: Override for the document cache file
            request_timeout: Seconds before an upstream request is abandoned
            request_delay: Seconds to sleep between events while regenerating
            download_documents: Store PDFs locally and serve them from /files
        """
        env_dir = os.getenv("FIA_DATA_DIR", "")
        self.data_dir = data_dir or (Path(env_dir) if env_dir else Path(__file__).parent.parent / "data")
        self.config_path = config_path or (self.data_dir / "config.json")
        self.cache_path = cache_path or (self.data_dir / "cache.json")
        self.documents_dir = self.data_dir / "documents"

        self.request_timeout = (
            request_timeout if request_timeout is not None else float(os.getenv("FIA_REQUEST_TIMEOUT", "15"))
        )
        self.request_delay = (
            request_delay if request_delay is not None else float(os.getenv("FIA_REQUEST_DELAY", "1.0"))
        )
        self.download_documents = (
            download_documents if download_documents is not None else _env_flag("FIA_DOWNLOAD_DOCUMENTS")
        )
        self.user_agent = os.getenv("FIA_USER_AGENT") or DEFAULT_USER_AGENT

    # ------------------------------------------------------------------
    # config
    # ------------------------------------------------------------------

    def load_config(self) -> EventConfig:
        try:
            with self.config_path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise RuntimeError(f"Failed to read config {self.config_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise RuntimeError(f"Config {self.config_path} must contain a JSON object")
        try:
            return EventConfig.from_dict(raw)
        except (TypeError, ValueError) as exc:
            raise RuntimeError(f"Invalid config {self.config_path}: {exc}") from exc

    def save_config(self, config: EventConfig) -> None:
        self._write_json_file(self.config_path, config.to_dict())
        logger.info("Configuration saved to %s", self.config_path)

    def event_mappings(self) -> Dict[str, str]:
        config = self.load_config()
        return {str(key): value for key, value in config.event_mappings.items()}

    # ------------------------------------------------------------------
    # cache
    # ------------------------------------------------------------------

    def load_cache(self) -> DocumentCache | None:
        raw = self._read_json_file(self.cache_path, None)
        if not isinstance(raw, dict):
            return None
        try:
            return DocumentCache.from_dict(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring malformed cache %s: %s", self.cache_path, exc)
            return None

    def save_cache(self, data: List[DocItem]) -> DocumentCache:
        cache = DocumentCache(timestamp=self._utc_now_iso(), data=list(data))
        self._write_json_file(self.cache_path, cache.to_dict())
        return cache

    # ------------------------------------------------------------------
    # upstream
    # ------------------------------------------------------------------

    def fetch_docs_for(self, event_id: int, base_url: str) -> List[DocItem]:
        """Fetch the documents published for one event; failures yield []."""
        endpoint = f"{base_url.rstrip('/')}/decision-document-list/ajax/{event_id}"
        logger.info("Fetching documents for event %s", event_id)
        try:
            with httpx.Client(timeout=self.request_timeout, headers={"User-Agent": self.user_agent}) as client:
                response = client.get(endpoint)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("Document list for event %s returned HTTP %s", event_id, exc.response.status_code)
            return []
        except httpx.HTTPError as exc:
            logger.warning("Document list request for event %s failed (%s)", event_id, exc)
            return []
        except ValueError as exc:
            logger.warning("Document list for event %s is not valid JSON (%s)", event_id, exc)
            return []

        return parse_document_list(payload, event_id)

    def download_document(self, url: str) -> Optional[str]:
        """Download ``url`` into the documents directory and return the filename."""
        filename = document_filename(url)
        target = self.documents_dir / filename
        if target.exists() and target.stat().st_size > 0:
            return filename

        partial = target.with_name(target.name + ".part")
        try:
            self.documents_dir.mkdir(parents=True, exist_ok=True)
            with httpx.Client(
                timeout=self.request_timeout,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
            ) as client:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with partial.open("wb") as handle:
                        for chunk in response.iter_bytes():
                            handle.write(chunk)
            partial.replace(target)
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("Failed to download %s (%s)", url, exc)
            partial.unlink(missing_ok=True)
            return None
        return filename

    def fetch_grand_prix_events_page(self, url: str, sample_path: Path | None = None) -> str:
        if sample_path is not None:
            logger.info("Using sample HTML from %s", sample_path)
            return sample_path.read_text(encoding="utf-8")

        logger.info("Fetching grand prix events from %s", url)
        headers = dict(BROWSER_HEADERS, **{"User-Agent": self.user_agent})
        with httpx.Client(timeout=30.0, headers=headers, follow_redirects=True) as client:
            response = client.get(url)
            response.raise_for_status()
            html = response.text
        logger.info("Fetched season page (%d characters)", len(html))
        return html

    # ------------------------------------------------------------------
    # regeneration
    # ------------------------------------------------------------------

    def regenerate_cache(self) -> List[DocItem]:
        try:
            config = self.load_config()
        except RuntimeError:
            logger.exception("Error regenerating cache")
            existing = self.load_cache()
            return existing.data if existing else []

        logger.info("Starting cache regeneration for %d events", len(config.event_ids))
        data: List[DocItem] = []
        for event_id in config.event_ids:
            try:
                items = self.fetch_docs_for(event_id, config.base_url)
                logger.info("Retrieved %d documents for event %s", len(items), event_id)
                data.extend(self._prepare_item(item, config) for item in items)

                if data:
                    self.save_cache(data)
                    logger.info("Intermediate cache saved with %d documents", len(data))
            except Exception:
                logger.exception("Failed to process event %s", event_id)

            if self.request_delay > 0:
                time.sleep(self.request_delay)

        if not data:
            logger.warning("No documents found during cache regeneration")
        else:
            logger.info("Fetched %d documents total", len(data))

        cache = self.save_cache(data)
        logger.info("Cache saved at %s", cache.timestamp)
        return data

    def _prepare_item(self, item: DocItem, config: EventConfig) -> DocItem:
        item.href = absolute_url(config.base_url, item.href)
        item.event_name = config.event_mappings.get(item.event_id, UNKNOWN_EVENT)
        if self.download_documents:
            filename = self.download_document(item.href)
            if filename:
                item.original_href = item.href
                item.href = f"{FILES_PREFIX}/{filename}"
        return item

    # ------------------------------------------------------------------
    # event discovery
    # ------------------------------------------------------------------

    @staticmethod
    def update_config_with_events(config: EventConfig, events: Iterable[EventInfo]) -> EventConfig:
        event_ids = list(config.event_ids)
        known = set(event_ids)
        mappings = dict(config.event_mappings)
        added: List[int] = []

        for event in events:
            if event.id not in known:
                known.add(event.id)
                added.append(event.id)
            mappings[event.id] = event.name

        logger.info("Added %d new event IDs to configuration", len(added))
        for event_id in added:
            logger.info("  - %s: %s", event_id, mappings[event_id])

        return EventConfig(base_url=config.base_url, event_ids=event_ids + added, event_mappings=mappings)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _read_json_file(self, path: Path, default: Any) -> Any:
        try:
            if not path.exists():
                return default
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Falling back to default for %s due to read error: %s", path, exc)
            return default

    def _write_json_file(self, path: Path, data: Any) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False)
            tmp_path.replace(path)
        except OSError as exc:
            raise RuntimeError(f"Failed to write {path}") from exc

    @staticmethod
    def _utc_now_iso() -> str:
        return dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def filter_documents(
    items: Iterable[DocItem],
    event_id: int | None = None,
    search: str | None = None,
) -> List[DocItem]:
    """Filter by event and search term, newest first."""
    term = (search or "").strip().lower()
    selected: List[DocItem] = []
    for item in items:
        if not item.title or not item.href or not item.event_name:
            continue
        if event_id is not None and item.event_id != event_id:
            continue
        if term and term not in item.title.lower() and term not in item.event_name.lower():
            continue
        selected.append(item)

    dated = [item for item in selected if item.published_at() is not None]
    undated = [item for item in selected if item.published_at() is None]
    return sorted(dated, key=lambda item: item.published_at(), reverse=True) + undated
