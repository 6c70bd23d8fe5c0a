"""Whole-store export and import."""

from __future__ import annotations

from typing import Any

from pydantic_core import to_jsonable_python

from dramaforge.config import get_logger
from dramaforge.exceptions import ValidationError
from dramaforge.storage.ids import utc_now
from dramaforge.storage.kv import KeyValueStore, StorageKeys

logger = get_logger(__name__)

EXPORT_VERSION = "1.0"


def export_all(store: KeyValueStore) -> dict[str, Any]:
    """Snapshot every known collection into one JSON-ready mapping."""
    data = {}
    for key in StorageKeys.all():
        value = store.get(key)
        if value is not None:
            data[key] = value
    return {
        "version": EXPORT_VERSION,
        "exported_at": to_jsonable_python(utc_now()),
        "data": data,
    }


def import_all(store: KeyValueStore, payload: dict[str, Any]) -> list[str]:
    """Restore collections from an ``export_all`` payload.

    Only known keys are written; each one replaces the stored value whole.
    Returns the keys that were written.
    """
    data = payload.get("data")
    if not isinstance(data, dict):
        raise ValidationError(
            message="Import payload has no 'data' mapping",
            hint="Pass the output of 'export_all' unchanged",
        )

    known = set(StorageKeys.all())
    written = []
    for key, value in data.items():
        if key not in known:
            logger.warning("Skipping unknown key during import", key=key)
            continue
        store.set(key, value)
        written.append(key)

    logger.info("Imported store data", keys=written, version=payload.get("version"))
    return written
