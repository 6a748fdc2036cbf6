from __future__ import annotations

import threading
import time

from barback.application.ports.cache import CacheStore
from barback.infrastructure.cache.redis_client import get_redis_client


class RedisCacheStore(CacheStore):
    def __init__(self, timeout_seconds: float = 1.0) -> None:
        self._timeout_seconds = timeout_seconds

    def get(self, key: str) -> str | None:
        value = get_redis_client(timeout_seconds=self._timeout_seconds).get(key)
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        get_redis_client(timeout_seconds=self._timeout_seconds).set(
            name=key,
            value=value,
            ex=ttl_seconds,
        )


class InMemoryCacheStore(CacheStore):
    """TTL cache for single-process deployments without Redis."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[str, float]] = {}

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (value, time.monotonic() + ttl_seconds)
