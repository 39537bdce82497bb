from __future__ import annotations

from dataclasses import dataclass
import time
from threading import Lock
from typing import Callable, Dict, Generic, Hashable, Optional, Sized, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class _Entry(Generic[T]):
    expires_at: float
    value: T


class ResponseCache(Generic[T]):
    """Short-lived cache for upstream feed responses.

    Keys are tuples whose first element is the adapter name, so a single
    feed can be dropped with ``invalidate(name)``. Entries are advisory:
    callers must behave the same on a miss.
    """

    def __init__(self, *, default_ttl_seconds: int = 600, maxsize: int = 256) -> None:
        self.default_ttl_seconds = default_ttl_seconds
        self.maxsize = maxsize
        self._lock = Lock()
        self._data: Dict[Hashable, _Entry[T]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get(self, key: Hashable) -> Optional[T]:
        now = time.time()
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if entry.expires_at <= now:
                del self._data[key]
                return None
            return entry.value

    def set(self, key: Hashable, value: T, *, ttl_seconds: int | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        with self._lock:
            if key not in self._data and len(self._data) >= self.maxsize:
                self._evict_locked()
            self._data[key] = _Entry(expires_at=time.time() + ttl, value=value)

    def get_or_fetch(self, key: Hashable, fetch: Callable[[], T], *, ttl_seconds: int | None = None) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = fetch()
        # an empty result usually means the feed failed; try again next time
        if isinstance(value, Sized) and len(value) == 0:
            return value
        self.set(key, value, ttl_seconds=ttl_seconds)
        return value

    def invalidate(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._data if k == prefix or (isinstance(k, tuple) and k and k[0] == prefix)]
            for k in doomed:
                del self._data[k]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def _evict_locked(self) -> None:
        now = time.time()
        expired = [k for k, v in self._data.items() if v.expires_at <= now]
        for k in expired:
            del self._data[k]
        if len(self._data) < self.maxsize or not self._data:
            return
        oldest_key = min(self._data.items(), key=lambda kv: kv[1].expires_at)[0]
        del self._data[oldest_key]
