"""
In-memory TTL cache for analytics results.

The application owns one ``TTLCache`` instance on ``app.state``; endpoints
receive it through the ``get_analytics_cache`` dependency. Tests build their
own instance with a fake clock.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import Request

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


class TTLCache:
    """Thread-safe key/value store whose entries expire after a time-to-live."""

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expires_at = self._clock() + (self.default_ttl if ttl is None else ttl)
        with self._lock:
            self._entries[key] = (value, expires_at)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                del self._entries[key]
                return None
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._entries.items() if now > expires_at]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Removed %d expired cache entries", len(expired))
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {"size": len(self._entries), "entries": sorted(self._entries)}


def generate_cache_key(prefix: str, params: Dict[str, Any]) -> str:
    """
    Build a deterministic cache key from a prefix and parameters.

    Parameters are sorted by name so argument order never changes the key.

    Examples:
        generate_cache_key("analytics", {"venue_id": "v1", "start_date": "2025-01-01"})
        -> "analytics:start_date:2025-01-01|venue_id:v1"
    """
    joined = "|".join(f"{key}:{params[key]}" for key in sorted(params))
    return f"{prefix}:{joined}"


def get_analytics_cache(request: Request) -> TTLCache:
    return request.app.state.analytics_cache
