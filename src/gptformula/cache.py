"""Response cache: key builders, backends and the read/write gateway.

Keys are sha256 digests of the canonical request (plus the cache-version
stamp), URL-safe base64 encoded so they are valid keys for any backend.

Two backends:
- In-memory LRU with expiry (default, for dev/testing/single process)
- Redis (shared across processes / Lambda containers)

The gateway never raises: a backend failure on read is a miss, on write it
is a skipped write.
"""
from __future__ import annotations

import base64
import hashlib
import json
import threading
import time
from collections import OrderedDict
from dataclasses import asdict
from typing import Callable, Optional, Tuple

import redis

from .types import (
    CACHE_VALUE_LIMIT,
    DEFAULT_CACHE_TTL_SECONDS,
    MAX_CACHE_TTL_SECONDS,
    ResolvedOptions,
)
from .logging_util import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "gpt:"
KEY_DELIMITER = "|"
MEMORY_CACHE_MAX_ENTRIES = 1024

# Options that change the answer of a direct (non-agent) completion.
CACHE_AFFECTING_OPTIONS = (
    "model",
    "temperature",
    "top_p",
    "max_tokens",
    "output_format",
    "system_prompt",
    "response_char_limit",
    "frequency_penalty",
    "presence_penalty",
)

def _encode(raw: str) -> str:
    digest = hashlib.sha256(raw.encode("utf-8")).digest()
    return KEY_PREFIX + base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

def build_agent_cache_key(
    prompt: str,
    context: str,
    sheet_identity: str,
    options: ResolvedOptions,
    toolkit_name: Optional[str],
    version: str,
) -> str:
    parts = [
        prompt,
        context,
        sheet_identity,
        json.dumps(asdict(options), sort_keys=True, ensure_ascii=False),
        toolkit_name or "",
        version,
    ]
    return _encode(KEY_DELIMITER.join(parts))

def build_cache_key(
    prompt: str,
    context: str,
    sheet_identity: str,
    options: ResolvedOptions,
    version: str,
) -> str:
    opts = asdict(options)
    raw = json.dumps(
        {
            "version": version,
            "prompt": prompt,
            "context": context,
            "sheet": sheet_identity,
            "options": {k: opts[k] for k in CACHE_AFFECTING_OPTIONS},
        },
        sort_keys=True,
        ensure_ascii=False,
    )
    return _encode(raw)

class CacheBackend:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise NotImplementedError

class MemoryCache(CacheBackend):
    """Process-local LRU with expiry. Expired entries are purged on every write."""

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_entries: int = MEMORY_CACHE_MAX_ENTRIES):
        self._clock = clock
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, Tuple[str, float]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._entries[key] = (value, now + ttl_seconds)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]

class RedisCache(CacheBackend):
    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self._redis = client or redis.Redis.from_url(redis_url, decode_responses=True)

    def get(self, key: str) -> Optional[str]:
        return self._redis.get(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._redis.set(key, value, ex=ttl_seconds)

def clamp_ttl(ttl) -> int:
    if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl != ttl:
        return DEFAULT_CACHE_TTL_SECONDS
    return int(max(1, min(MAX_CACHE_TTL_SECONDS, ttl)))

class CacheGateway:
    def __init__(self, backend: CacheBackend):
        self.backend = backend

    def read(self, key: str) -> Optional[str]:
        try:
            cached = self.backend.get(key)
        except Exception as e:
            logger.warning("Cache read failed (treated as miss): %s", e)
            return None
        if cached:
            logger.debug("cache HIT for key %s", key[:16])
            return cached
        logger.debug("cache MISS for key %s", key[:16])
        return None

    def write(self, key: str, value: str, ttl_seconds) -> bool:
        if not value:
            return False
        if len(value) > CACHE_VALUE_LIMIT:
            logger.info("Skipping cache write: %d chars exceeds %d", len(value), CACHE_VALUE_LIMIT)
            return False
        try:
            self.backend.set(key, value, clamp_ttl(ttl_seconds))
        except Exception as e:
            logger.warning("Cache write failed (skipped): %s", e)
            return False
        return True
