"""Identifier and timestamp helpers for stored records."""

from __future__ import annotations

import secrets
import time
from datetime import UTC, datetime

from dramaforge.storage.kv import KeyValueStore, StorageKeys

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    """Render a non-negative integer in lowercase base 36."""
    if value < 0:
        raise ValueError("base36 encoding needs a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id(prefix: str) -> str:
    """Build ``<prefix>_<base36 millis><6 random base36 chars>``."""
    stamp = to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{prefix}_{stamp}{suffix}"


def generate_numeric_id(store: KeyValueStore, counter_name: str) -> int:
    """Return the next value of a persisted per-collection counter.

    Counters start at 1 and live together under the id_counters key.
    """
    counters = store.get(StorageKeys.ID_COUNTERS, {}) or {}
    next_id = int(counters.get(counter_name, 0)) + 1
    counters[counter_name] = next_id
    store.set(StorageKeys.ID_COUNTERS, counters)
    return next_id


def utc_now() -> datetime:
    """Timezone-aware current time used for every record timestamp."""
    return datetime.now(UTC)
