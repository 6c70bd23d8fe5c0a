"""Generic CRUD over a named collection of pydantic records."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from dramaforge.config import get_logger
from dramaforge.storage.ids import utc_now
from dramaforge.storage.kv import KeyValueStore

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


def same_id(left: Any, right: Any) -> bool:
    """Compare record ids that may have been stored as int or str."""
    if left is None or right is None:
        return False
    return str(left) == str(right)


class StorageCollection(Generic[T]):
    """A collection persisted as one JSON array under a single key.

    Every write reads the whole array, changes it in memory and writes the
    whole array back. Two interleaved writers therefore race at collection
    granularity and the last one wins.
    """

    def __init__(self, store: KeyValueStore, key: str, model: type[T]) -> None:
        self.store = store
        self.key = key
        self.model = model

    def _load_raw(self) -> list[dict[str, Any]]:
        data = self.store.get(self.key, [])
        if not isinstance(data, list):
            logger.warning("Collection payload is not a list", key=self.key)
            return []
        return data

    def _save_raw(self, items: list[dict[str, Any]]) -> None:
        self.store.set(self.key, items)

    def _dump(self, item: T) -> dict[str, Any]:
        return item.model_dump(mode="json")

    def get_all(self) -> list[T]:
        """Return every record in storage order."""
        return [self.model.model_validate(raw) for raw in self._load_raw()]

    def replace_all(self, items: list[T]) -> None:
        """Overwrite the whole collection."""
        self._save_raw([self._dump(item) for item in items])

    def get_by_id(self, item_id: Any) -> T | None:
        """Return the record with ``item_id`` or None."""
        for raw in self._load_raw():
            if same_id(raw.get("id"), item_id):
                return self.model.model_validate(raw)
        return None

    def add(self, item: T) -> T:
        """Append a record and return it."""
        items = self._load_raw()
        items.append(self._dump(item))
        self._save_raw(items)
        return item

    def update(self, item_id: Any, fields: dict[str, Any]) -> T | None:
        """Shallow-merge ``fields`` into a record.

        ``updated_at`` is refreshed when the model carries it. Returns the
        updated record, or None when no record has ``item_id``.
        """
        items = self._load_raw()
        for index, raw in enumerate(items):
            if not same_id(raw.get("id"), item_id):
                continue
            merged = {**raw, **to_jsonable_python(fields)}
            if "updated_at" in self.model.model_fields:
                merged["updated_at"] = to_jsonable_python(utc_now())
            updated = self.model.model_validate(merged)
            items[index] = self._dump(updated)
            self._save_raw(items)
            return updated
        return None

    def delete(self, item_id: Any) -> bool:
        """Remove a record; returns whether one was removed."""
        items = self._load_raw()
        remaining = [raw for raw in items if not same_id(raw.get("id"), item_id)]
        if len(remaining) == len(items):
            return False
        self._save_raw(remaining)
        return True

    def filter(self, predicate: Callable[[T], bool]) -> list[T]:
        """Return records matching ``predicate`` in storage order."""
        return [item for item in self.get_all() if predicate(item)]

    def count(self) -> int:
        return len(self._load_raw())

    def clear(self) -> None:
        self._save_raw([])
