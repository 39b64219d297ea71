import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict


@dataclass
class CacheEntry:
    payload: Any
    created_at: float
    ttl_seconds: float

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl_seconds

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TTLCache:
    """
    Simple in-memory TTL cache for upstream payloads.
    Note: Cache is per-process and lost on restart.

    Payloads are stored as-is (no copy, no serialization), so a get() before
    the TTL elapses returns the exact object that was set.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        on_expire: Callable[[str], None] | None = None,
    ):
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._on_expire = on_expire

    def get(self, key: str) -> Any | None:
        """Get the cached payload, or None if absent or expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if not entry.is_expired(self._clock()):
                return entry.payload
            del self._cache[key]

        self._notify_expired(key)
        return None

    def set(self, key: str, payload: Any, ttl_seconds: float) -> None:
        """Cache a payload, replacing any previous entry and resetting its TTL."""
        with self._lock:
            self._cache[key] = CacheEntry(payload, self._clock(), ttl_seconds)

    def clear_expired(self) -> int:
        """Remove expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired_keys = [k for k, entry in self._cache.items() if entry.is_expired(now)]
            for k in expired_keys:
                del self._cache[k]

        for k in expired_keys:
            self._notify_expired(k)
        return len(expired_keys)

    async def run_sweeper(self, interval: float) -> None:
        """Call clear_expired() every `interval` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            self.clear_expired()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def _notify_expired(self, key: str) -> None:
        if self._on_expire is not None:
            self._on_expire(key)
