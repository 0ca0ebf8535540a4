"""Scraping, caching and filtering of FIA event documents."""

from .document import DocItem, DocumentCache, EventConfig, EventInfo
from .loader import DataStore, filter_documents

__all__ = ["DocItem", "DocumentCache", "EventConfig", "EventInfo", "DataStore", "filter_documents"]
