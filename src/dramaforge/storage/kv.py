"""Key-value substrates backing the document store.

A substrate stores JSON-serializable values under string keys. It offers no
queries and no partial writes; collections are read and rewritten whole.
"""

from __future__ import annotations

import copy
import json
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from dramaforge.config import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "drama_"


class StorageKeys:
    """Substrate keys for every persisted collection."""

    DRAMAS = f"{KEY_PREFIX}dramas"
    CHARACTER_LIBRARY = f"{KEY_PREFIX}character_library"
    ASSETS = f"{KEY_PREFIX}assets"
    AI_CONFIGS = f"{KEY_PREFIX}ai_configs"
    IMAGES = f"{KEY_PREFIX}images"
    VIDEOS = f"{KEY_PREFIX}videos"
    TASKS = f"{KEY_PREFIX}tasks"
    FRAME_PROMPTS = f"{KEY_PREFIX}frame_prompts"
    VIDEO_MERGES = f"{KEY_PREFIX}video_merges"
    ID_COUNTERS = f"{KEY_PREFIX}id_counters"

    @classmethod
    def all(cls) -> list[str]:
        """Every collection key, counters included."""
        return [
            cls.DRAMAS,
            cls.CHARACTER_LIBRARY,
            cls.ASSETS,
            cls.AI_CONFIGS,
            cls.IMAGES,
            cls.VIDEOS,
            cls.TASKS,
            cls.FRAME_PROMPTS,
            cls.VIDEO_MERGES,
            cls.ID_COUNTERS,
        ]


class KeyValueStore(ABC):
    """Synchronous get/set/delete of JSON values keyed by string."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key`` or ``default``."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return every stored key."""


class MemoryStore(KeyValueStore):
    """In-process substrate, mostly for tests and throwaway sessions.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store, matching the file-backed behavior.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON to reject values the file store cannot hold
        self._data[key] = json.loads(json.dumps(value))

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore(KeyValueStore):
    """One ``<key>.json`` file per key under a directory."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Corrupt storage file", key=key, path=str(path), error=str(e))
            return default

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        # Write to a sibling temp file then rename so readers never see half a file
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self.root.glob("*.json"))
