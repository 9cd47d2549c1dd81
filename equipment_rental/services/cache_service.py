from __future__ import annotations

import json
import logging
import os
import threading
import time
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

CACHE_LOGGER = logging.getLogger("equipment_rental.cache")

RENTAL_CONTRACTS_SCOPE = "rental-contracts"
SELLING_CONTRACTS_SCOPE = "selling-contracts"
EQUIPMENT_SCOPE = "equipment"

ANALYTICS_CACHE_TTL_SECONDS = int(os.environ.get("ANALYTICS_CACHE_TTL_SECONDS") or "900")


class CacheBackend:
    """String key/value store with optional per-entry expiry."""

    def get(self, key: str) -> Optional[str]:  # pragma: no cover
        raise NotImplementedError

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:  # pragma: no cover
        raise NotImplementedError


class MemoryCache(CacheBackend):
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[str, float | None]] = {}

    def get(self, key: str) -> Optional[str]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= now:
                self._entries.pop(key, None)
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        now = self._clock()
        expires_at = now + ttl_seconds if ttl_seconds else None
        with self._lock:
            # Entries keyed by a replaced scope version are never read again.
            expired = [k for k, (_, exp) in self._entries.items() if exp is not None and exp <= now]
            for k in expired:
                self._entries.pop(k, None)
            self._entries[key] = (value, expires_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisCache(CacheBackend):
    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._client = None

    def _get_client(self):
        if self._client is None:
            import redis

            self._client = redis.Redis.from_url(self.redis_url, decode_responses=True)
        return self._client

    def get(self, key: str) -> Optional[str]:
        return self._get_client().get(key)

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._get_client().set(key, value, ex=ttl_seconds or None)


class CacheVersionProvider:
    """Hands out one opaque version token per cache scope.

    Read-side keys embed the token, so replacing it orphans every entry
    cached for the scope without deleting anything.
    """

    def __init__(self, backend: CacheBackend):
        self.backend = backend

    @staticmethod
    def version_key(scope: str) -> str:
        return f"cache-version:{scope}"

    def get_version(self, scope: str) -> str:
        key = self.version_key(scope)
        version = self.backend.get(key)
        if not version:
            version = uuid.uuid4().hex
            self.backend.set(key, version)
        return version

    def increment(self, scope: str) -> str:
        version = uuid.uuid4().hex
        self.backend.set(self.version_key(scope), version)
        CACHE_LOGGER.debug("Cache scope %s moved to version %s", scope, version)
        return version

    def increment_many(self, *scopes: str) -> None:
        for scope in dict.fromkeys(scopes):
            self.increment(scope)


def date_key(value: date | datetime | None) -> str:
    if value is None:
        return "null"
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).strftime("%Y%m%d%H%M%S")
    return value.strftime("%Y%m%d")


def _format_key_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, (date, datetime)):
        return date_key(value)
    return str(value)


def analytics_key(name: str, version: str | None = None, **params: Any) -> str:
    suffix = ":".join(f"{key}={_format_key_value(value)}" for key, value in params.items())
    return f"analytics:v{version or ''}:{name}:{suffix}"


def cached(
    versions: CacheVersionProvider,
    scope: str,
    name: str,
    compute: Callable[[], Any],
    ttl_seconds: int | None = None,
    **params: Any,
) -> Any:
    """Return the JSON-serializable result of ``compute`` through the versioned cache."""
    key = analytics_key(name, versions.get_version(scope), **params)
    raw = versions.backend.get(key)
    if raw is not None:
        CACHE_LOGGER.debug("Cache hit %s", key)
        return json.loads(raw)

    value = compute()
    versions.backend.set(key, json.dumps(value), ttl_seconds or ANALYTICS_CACHE_TTL_SECONDS)
    CACHE_LOGGER.debug("Cache miss %s", key)
    return value


_PROVIDER_LOCK = threading.Lock()
_PROVIDER: CacheVersionProvider | None = None


def build_cache_backend(cache_url: str | None = None) -> CacheBackend:
    url = (cache_url if cache_url is not None else os.environ.get("CACHE_URL") or "").strip()
    if url:
        CACHE_LOGGER.info("Using Redis cache backend")
        return RedisCache(url)
    return MemoryCache()


def get_cache_version_provider() -> CacheVersionProvider:
    global _PROVIDER
    with _PROVIDER_LOCK:
        if _PROVIDER is None:
            _PROVIDER = CacheVersionProvider(build_cache_backend())
        return _PROVIDER


def set_cache_backend(backend: CacheBackend) -> CacheVersionProvider:
    """Replace the process-wide provider; used at startup and by tests."""
    global _PROVIDER
    with _PROVIDER_LOCK:
        _PROVIDER = CacheVersionProvider(backend)
        return _PROVIDER
