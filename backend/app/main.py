from __future__ import annotations

import datetime as dt
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field

from fiadocs_core import DataStore, DocItem, filter_documents

from . import pwa

ASSETS_DIR = Path(os.getenv("FIA_ASSETS_DIR", "") or Path(__file__).parent.parent / "assets")

logger = logging.getLogger(__name__)


class DocItemModel(BaseModel):
    event_id: int = Field(alias="eventId")
    href: str
    original_href: Optional[str] = Field(default=None, alias="originalHref")
    title: str
    published: str
    event_name: Optional[str] = Field(default=None, alias="eventName")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_item(cls, item: DocItem) -> "DocItemModel":
        return cls(
            eventId=item.event_id,
            href=item.href,
            originalHref=item.original_href,
            title=item.title,
            published=item.published,
            eventName=item.event_name,
        )


class DocumentsResponse(BaseModel):
    timestamp: str
    data: List[DocItemModel]


class RegenerateResponse(BaseModel):
    status: int
    regenerated: int


class HealthResponse(BaseModel):
    status: str
    message: str


@lru_cache(maxsize=1)
def store() -> DataStore:
    return DataStore()


def _utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_app() -> FastAPI:
    app = FastAPI(title="FIA F1 Documents API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/documents", response_model=DocumentsResponse, response_model_exclude_none=True)
    def documents(
        event_id: Optional[int] = Query(default=None, alias="eventId"),
        q: Optional[str] = Query(default=None),
    ):
        cache = store().load_cache()
        if cache is not None:
            timestamp, items = cache.timestamp, cache.data
        else:
            logger.info("No document cache present; regenerating on request")
            items = store().regenerate_cache()
            timestamp = _utc_now_iso()

        if event_id is not None or q:
            items = filter_documents(items, event_id=event_id, search=q)
        return DocumentsResponse(timestamp=timestamp, data=[DocItemModel.from_item(item) for item in items])

    @app.get("/events")
    def events() -> Dict[str, str]:
        try:
            return store().event_mappings()
        except RuntimeError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @app.post("/admin/regen", response_model=RegenerateResponse)
    def regenerate(x_cache_token: str = Header(default="")):
        expected = os.getenv("CACHE_TOKEN", "")
        if not expected or x_cache_token != expected:
            raise HTTPException(status_code=403, detail="Forbidden")
        data = store().regenerate_cache()
        return RegenerateResponse(status=200, regenerated=len(data))

    @app.get("/api", response_class=HTMLResponse)
    def api_index() -> str:
        return pwa.render_api_page()

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        cache = store().load_cache()
        if cache is None:
            return pwa.render_loading_page()
        try:
            mappings = store().event_mappings()
        except RuntimeError:
            logger.warning("Event mappings unavailable; rendering without event filter")
            mappings = {}
        return pwa.render_index_page([item.to_dict() for item in cache.data], mappings)

    @app.get("/manifest.json")
    def manifest() -> dict:
        return pwa.manifest()

    @app.get("/service-worker.js")
    def service_worker() -> Response:
        return Response(content=pwa.service_worker_script(pwa.precache_urls(ASSETS_DIR)), media_type="application/javascript")

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", message="FIA F1 Documents PWA is running smoothly.")

    @app.get("/files/{filename}")
    def downloaded_file(filename: str) -> FileResponse:
        if Path(filename).name != filename or filename.startswith("."):
            raise HTTPException(status_code=404, detail="Not Found")
        path = store().documents_dir / filename
        if not path.is_file():
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(path, media_type="application/pdf")

    if ASSETS_DIR.is_dir():
        app.mount("/assets", StaticFiles(directory=ASSETS_DIR), name="assets")
    else:
        logger.warning("Assets directory %s not found; /assets is disabled", ASSETS_DIR)
    return app


app = create_app()
