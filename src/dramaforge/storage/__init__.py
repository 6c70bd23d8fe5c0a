"""Document store: collections of JSON records over a key-value substrate."""

from __future__ import annotations

from pathlib import Path

from dramaforge.config import DramaForgeSettings
from dramaforge.storage.backup import export_all, import_all
from dramaforge.storage.collection import StorageCollection, same_id
from dramaforge.storage.ids import generate_id, generate_numeric_id, utc_now
from dramaforge.storage.kv import (
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    StorageKeys,
)
from dramaforge.storage.pagination import Page, PageInfo, paginate


def create_store(settings: DramaForgeSettings) -> KeyValueStore:
    """Build the substrate named by ``settings.store_backend``."""
    if settings.store_backend == "memory":
        return MemoryStore()
    return JsonFileStore(Path(settings.store_path))


__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "Page",
    "PageInfo",
    "StorageCollection",
    "StorageKeys",
    "create_store",
    "export_all",
    "generate_id",
    "generate_numeric_id",
    "import_all",
    "paginate",
    "same_id",
    "utc_now",
]
