"""
In-memory response cache for OpenDota JSON payloads.

Entries are kept past their TTL: a stale entry is still returned (flagged as
not fresh) so the client can serve it when the live request fails. Eviction
happens only on insert, by count, least-recently-written first.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple, Any

logger = logging.getLogger(__name__)


def build_cache_key(url: str, params: Optional[Iterable[Tuple[str, Any]]] = None) -> str:
    """
    Build a deterministic request key.

    Query parameters are rendered as ``k=v`` and sorted, so logically
    identical requests with differently ordered parameters share a key.

    Args:
        url: Base URL without query string
        params: Optional iterable of (key, value) pairs

    Returns:
        ``url`` or ``url?a=1&b=2``
    """
    if not params:
        return url
    pairs = sorted(f"{key}={value}" for key, value in params)
    return f"{url}?{'&'.join(pairs)}"


@dataclass
class CacheEntry:
    """Cached payload with its insertion time."""
    inserted_at: float
    payload: bytes


class ResponseCache:
    """
    TTL + LRU-by-write cache mapping request keys to raw JSON bytes.

    Features:
    - Freshness check against TTL on every read
    - Stale entries retained until evicted by capacity
    - Writes move the key to the most-recent position
    - Thread-safe operations

    Example:
        cache = ResponseCache(max_entries=256, ttl_seconds=300)
        cache.set(key, body)
        hit = cache.get(key)
        if hit and hit[1]:
            return json.loads(hit[0])
    """

    def __init__(
        self,
        max_entries: int = 256,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize response cache.

        Args:
            max_entries: Maximum number of entries kept (minimum 1)
            ttl_seconds: Age after which an entry is reported stale
            clock: Monotonic time source, overridable for tests
        """
        self.max_entries = max(1, int(max_entries))
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # Oldest write first, most recent write last
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

        # Metrics tracking
        self._hits = 0
        self._stale_hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Tuple[bytes, bool]]:
        """
        Look up a cached payload.

        Args:
            key: Request key from build_cache_key()

        Returns:
            (payload, is_fresh) or None if the key was never cached or was evicted
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            fresh = (self._clock() - entry.inserted_at) <= self.ttl_seconds
            if fresh:
                self._hits += 1
            else:
                self._stale_hits += 1
            return entry.payload, fresh

    def set(self, key: str, payload: bytes) -> None:
        """
        Store a payload, overwriting any existing entry for the key.

        Args:
            key: Request key
            payload: Raw response body
        """
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            self._entries[key] = CacheEntry(inserted_at=self._clock(), payload=payload)

            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry: {evicted}")

    def keys(self) -> list:
        """Keys ordered most-recently-written first."""
        with self._lock:
            return list(reversed(self._entries.keys()))

    def clear(self) -> int:
        """
        Clear all cache entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def get_metrics(self) -> Dict[str, Any]:
        """Get cache performance metrics."""
        with self._lock:
            total_requests = self._hits + self._stale_hits + self._misses
            hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0
            return {
                "hits": self._hits,
                "stale_hits": self._stale_hits,
                "misses": self._misses,
                "total_entries": len(self._entries),
                "hit_rate": hit_rate,
            }
