"""In-memory TTL cache for per-session conversation context."""

import time
from typing import Any, Callable


class InMemoryTTLCache:
    """
    In-memory cache with TTL (Time To Live), keyed by session id.

    No lock is taken: a session's messages are processed one at a time and
    entries are only addressed by their own session id.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        """
        Initialize cache with TTL.

        Args:
            ttl_seconds: Time to live in seconds for cached entries
            clock: Monotonic time source, injectable for tests
        """
        self._cache: dict[str, tuple[Any, float]] = {}
        self._ttl = ttl_seconds
        self._clock = clock

    def __len__(self) -> int:
        return len(self._cache)

    def get(self, key: str) -> Any | None:
        """
        Get cached value if it exists and has not expired.

        Returns:
            Cached value if valid, None otherwise
        """
        if key in self._cache:
            value, expiry = self._cache[key]
            if self._clock() < expiry:
                return value
            # Expired - remove it
            del self._cache[key]
        return None

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = (value, self._clock() + self._ttl)

    def replace(self, key: str, value: Any) -> bool:
        """Swap a live entry's value without extending its expiry; False if absent."""
        if self.get(key) is None:
            return False
        _, expiry = self._cache[key]
        self._cache[key] = (value, expiry)
        return True

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def sweep(self) -> int:
        """Delete every expired entry; returns how many were dropped."""
        now = self._clock()
        expired = [key for key, (_, expiry) in self._cache.items() if now >= expiry]
        for key in expired:
            del self._cache[key]
        return len(expired)
