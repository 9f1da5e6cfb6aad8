"""
Best-effort key/value storage for per-browser-session state.

Everything kept here is a cache, not a source of truth: reads go through
`read_json`, which returns a default for missing or unparsable values and
never raises.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class Storage:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(Storage):
    """In-process storage, used when no database is configured."""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class MongoStorage(Storage):
    """Stores values as `{key, value, updated_at}` documents."""

    def __init__(self, database, collection_name: str = "storage"):
        self._col = database[collection_name]

    def get(self, key: str) -> Optional[str]:
        doc = self._col.find_one({"key": key})
        if not doc:
            return None
        value = doc.get("value")
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._col.update_one(
            {"key": key},
            {"$set": {"value": value, "updated_at": datetime.now(timezone.utc)}},
            upsert=True,
        )

    def remove(self, key: str) -> None:
        self._col.delete_one({"key": key})


def read_json(storage: Storage, key: str, default: Any = None) -> Any:
    raw = storage.get(key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Discarding corrupt storage entry %s", key)
        storage.remove(key)
        return default


def write_json(storage: Storage, key: str, value: Any) -> None:
    storage.set(key, json.dumps(value))


def create_storage(database=None) -> Storage:
    if database is not None:
        return MongoStorage(database)
    return MemoryStorage()
