"""Key/value configuration store.

Holds the two pieces of process-wide state the formula needs:
- the API credential
- the cache-version stamp embedded in every cache key

Rotating the stamp is the only cache invalidation mechanism: old entries are
never deleted, they just stop being addressable.
"""
from __future__ import annotations

import json
import os
import threading
import uuid
from pathlib import Path
from typing import Dict, Optional

from .logging_util import get_logger

logger = get_logger(__name__)

API_KEY = "OPENAI_API_KEY"
CACHE_VERSION_KEY = "GPT_CACHE_VERSION"

class ConfigStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

class MemoryConfigStore(ConfigStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._lock = threading.Lock()
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

class JsonFileConfigStore(ConfigStore):
    """Persists properties to a small JSON file (written via atomic replace)."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Failed to read config store: %s (%s)", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

def _new_version() -> str:
    return uuid.uuid4().hex

def get_or_init_cache_version(store: ConfigStore) -> str:
    version = store.get(CACHE_VERSION_KEY)
    if not version:
        version = _new_version()
        store.set(CACHE_VERSION_KEY, version)
        logger.info("Initialized cache version")
    return version

def rotate_cache_version(store: ConfigStore) -> str:
    version = _new_version()
    store.set(CACHE_VERSION_KEY, version)
    logger.info("Cache version rotated; all cached entries are now stale")
    return version
