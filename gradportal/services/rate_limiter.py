"""Fixed-window login throttling backed by the application cache."""

from flask import current_app

from gradportal.services.cache_service import TTLCache, get_cache
from gradportal.utils.exceptions import RateLimitError


def throttle_key(ip: str, identifier: str) -> str:
    """Key for one client address and one identifier, lowercased as a whole"""
    return f"{ip or ''}|{identifier or ''}".lower()


class RateLimiter:
    """Counts failed attempts per key within a fixed window.

    Attributes:
        max_attempts: Attempts allowed before the key is locked out.
        decay_seconds: Window length, started by the first failed attempt.
    """

    def __init__(self, cache: TTLCache, max_attempts: int = 5, decay_seconds: int = 60):
        self.cache = cache
        self.max_attempts = max_attempts
        self.decay_seconds = decay_seconds

    @classmethod
    def from_app(cls) -> 'RateLimiter':
        return cls(
            get_cache(),
            current_app.config['LOGIN_MAX_ATTEMPTS'],
            current_app.config['LOGIN_DECAY_SECONDS'],
        )

    @staticmethod
    def _counter(key: str) -> str:
        return f"login_attempts:{key}"

    def attempts(self, key: str) -> int:
        return self.cache.get(self._counter(key), 0)

    def too_many_attempts(self, key: str) -> bool:
        return self.attempts(key) >= self.max_attempts

    def hit(self, key: str) -> int:
        return self.cache.increment(self._counter(key), self.decay_seconds)

    def available_in(self, key: str) -> int:
        return self.cache.expires_in(self._counter(key))

    def clear(self, key: str) -> None:
        self.cache.forget(self._counter(key))

    def ensure_not_limited(self, key: str) -> None:
        """
        Raises:
            RateLimitError: when the key is locked out
        """
        if self.too_many_attempts(key):
            raise RateLimitError(self.available_in(key))
