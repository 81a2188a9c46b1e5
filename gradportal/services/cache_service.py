"""Process-wide TTL cache for legacy sessions, enrichment markers and login throttling.

Expired entries are dropped when read and swept on write at most once per
``sweep_interval`` seconds. The cache holds at most ``max_size`` entries; once
full, the oldest entry is evicted. There is no explicit invalidation on logout.
"""

import math
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from flask import current_app

from gradportal.utils.helpers import log_warning

LEGACY_SESSION_KEY = 'legacy_session_{user_id}'
PENDING_ENRICHMENT_KEY = 'pending_enrichment_{user_id}'


class TTLCache:
    """In-memory key/value cache with per-entry expiry.

    Thread-safe; every operation takes the same lock.
    """

    def __init__(self, clock: Callable[[], float] = time.time, max_size: int = 10000,
                 sweep_interval: float = 60):
        """Initialize TTLCache.

        Args:
            clock: Source of the current time in seconds. Tests pass a fake clock.
            max_size: Maximum number of entries kept.
            sweep_interval: Minimum seconds between sweeps of expired entries.
        """
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._max_size = max_size
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()

    def _live(self, key: str) -> Optional[Tuple[Any, Optional[float]]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._entries.items()
                   if expires_at is not None and expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now

    def _store(self, key: str, value: Any, expires_at: Optional[float]) -> None:
        """Write an entry, sweeping and evicting first. Caller holds the lock."""
        now = self._clock()
        if now - self._last_sweep >= self._sweep_interval:
            self._sweep(now)
        if key not in self._entries and len(self._entries) >= self._max_size:
            self._sweep(now)
            while len(self._entries) >= self._max_size:
                # dicts keep insertion order, so the first key is the oldest
                del self._entries[next(iter(self._entries))]
        self._entries[key] = (value, expires_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def now(self) -> float:
        return self._clock()

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value, replacing any previous one.

        Args:
            key: Cache key.
            value: Value to store.
            ttl: Lifetime in seconds; None keeps the entry until it is forgotten.
        """
        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._store(key, value, expires_at)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._live(key)
            return default if entry is None else entry[0]

    def has(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None

    def pull(self, key: str, default: Any = None) -> Any:
        """Return a value and remove it in one step"""
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return default
            del self._entries[key]
            return entry[0]

    def forget(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def increment(self, key: str, ttl: float) -> int:
        """Increment a counter, starting a new window of ``ttl`` seconds when absent.

        The expiry is set by the first hit only, so the window is fixed.

        Returns:
            The counter value after incrementing.
        """
        with self._lock:
            entry = self._live(key)
            if entry is None:
                self._store(key, 1, self._clock() + ttl)
                return 1
            count, expires_at = entry
            self._entries[key] = (count + 1, expires_at)
            return count + 1

    def expires_in(self, key: str) -> int:
        """Seconds until ``key`` expires, rounded up; 0 if absent or without expiry"""
        with self._lock:
            entry = self._live(key)
            if entry is None or entry[1] is None:
                return 0
            return max(1, math.ceil(entry[1] - self._clock()))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
def get_cache() -> TTLCache:
    """Cache bound to the current application"""
    return current_app.extensions['gradportal_cache']


class LegacySessionStore:
    """Writes the cache entries background workers read after a login.

    Write failures are logged and never raised.
    """

    def __init__(self, cache: TTLCache, session_ttl: int, marker_ttl: int):
        self.cache = cache
        self.session_ttl = session_ttl
        self.marker_ttl = marker_ttl

    @classmethod
    def from_app(cls) -> 'LegacySessionStore':
        return cls(
            get_cache(),
            current_app.config['LEGACY_SESSION_TTL'],
            current_app.config['PENDING_ENRICHMENT_TTL'],
        )

    def store_session(self, user_id: int, legacy_session: Dict[str, Any]) -> bool:
        try:
            self.cache.put(LEGACY_SESSION_KEY.format(user_id=user_id), legacy_session, self.session_ttl)
            return True
        except Exception as e:
            log_warning(f"Failed caching legacy session for user {user_id}", e)
            return False

    def get_session(self, user_id: int) -> Optional[Dict[str, Any]]:
        return self.cache.get(LEGACY_SESSION_KEY.format(user_id=user_id))

    def mark_pending_enrichment(self, user_id: int, is_staff: bool) -> bool:
        marker = {'is_staff': is_staff, 'timestamp': int(self.cache.now())}
        try:
            self.cache.put(PENDING_ENRICHMENT_KEY.format(user_id=user_id), marker, self.marker_ttl)
            return True
        except Exception as e:
            log_warning(f"Failed caching enrichment marker for user {user_id}", e)
            return False

    def pull_pending_enrichment(self, user_id: int) -> Optional[Dict[str, Any]]:
        return self.cache.pull(PENDING_ENRICHMENT_KEY.format(user_id=user_id))
