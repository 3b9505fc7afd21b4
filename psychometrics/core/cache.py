"""
In-memory key-value store used for memoisation.

The engine owns its stores explicitly (one per engine instance) instead of
using module-level state, so independent norming runs never share entries.
Access is guarded by a lock so an engine can be shared between threads.
"""

import hashlib
import json
import threading
import time
from typing import Any, Dict, Iterator, Optional, Tuple


class SimpleCache:
    """Thread-safe dict-backed cache with optional per-entry TTL.

    Args:
        default_ttl: Lifetime in seconds applied when ``set`` gets no ttl.
            None means entries never expire.
    """

    def __init__(self, default_ttl: Optional[float] = None):
        self.default_ttl = default_ttl
        self._cache: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if missing or expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            value, expiry = entry
            if expiry is not None and time.time() >= expiry:
                del self._cache[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = ttl if ttl is not None else self.default_ttl
        expiry = time.time() + ttl if ttl else None
        with self._lock:
            self._cache[key] = (value, expiry)

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def delete_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``. Returns the count removed."""
        with self._lock:
            keys = [k for k in self._cache if k.startswith(prefix)]
            for k in keys:
                del self._cache[k]
            return len(keys)

    def cleanup_expired(self) -> int:
        """Drop expired entries. Returns the count removed."""
        now = time.time()
        with self._lock:
            expired = [
                k
                for k, (_, expiry) in self._cache.items()
                if expiry is not None and now >= expiry
            ]
            for k in expired:
                del self._cache[k]
            return len(expired)

    def values(self) -> Iterator[Any]:
        """Snapshot of live values."""
        now = time.time()
        with self._lock:
            live = [
                value
                for value, expiry in self._cache.values()
                if expiry is None or now < expiry
            ]
        return iter(live)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


def cache_key(*args: Any, **kwargs: Any) -> str:
    """Deterministic hash of the given arguments (keyword order independent)."""
    payload = json.dumps(
        {"args": args, "kwargs": kwargs}, sort_keys=True, default=str
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
