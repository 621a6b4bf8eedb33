"""Per-minute token bucket gating outbound API requests."""

import asyncio
import logging
import time
from typing import Callable, Dict

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


class RateLimiter:
    """
    Fixed-window token bucket.

    Allows bursts of up to ``per_minute`` requests with no delay, then blocks
    callers until the next window boundary. The bucket is refilled to
    ``per_minute`` only when a full window has elapsed since the last refill.

    Shared by every concurrent fetch task; refill and consume happen under a
    single asyncio.Lock so token accounting is never corrupted.

    Example:
        limiter = RateLimiter(per_minute=60)
        waited = await limiter.acquire()
        if waited:
            logger.debug(f"Waited {waited:.1f}s for rate limit")
    """

    def __init__(
        self,
        per_minute: int,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize rate limiter.

        Args:
            per_minute: Tokens granted per 60 second window (minimum 1)
            clock: Monotonic time source, overridable for tests
        """
        self.per_minute = max(1, int(per_minute))
        self._clock = clock
        self.tokens = self.per_minute
        self.last_refill = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        if now - self.last_refill >= WINDOW_SECONDS:
            self.tokens = self.per_minute
            self.last_refill = now

    async def acquire(self) -> float:
        """
        Take one token, waiting for the next window if the bucket is empty.

        Returns:
            Seconds waited (0.0 if a token was immediately available)
        """
        async with self._lock:
            self._refill()
            if self.tokens > 0:
                self.tokens -= 1
                return 0.0

            elapsed = self._clock() - self.last_refill
            wait_time = max(0.0, WINDOW_SECONDS - elapsed)
            logger.debug(f"Rate limit reached, waiting {wait_time:.1f}s")
            await asyncio.sleep(wait_time)

            # Window boundary reached: start a new window and take its first token
            self.tokens = self.per_minute
            self.last_refill = self._clock()
            self.tokens -= 1
            return wait_time

    def get_limits(self) -> Dict[str, float]:
        """
        Get current limiter state.

        Returns:
            Dictionary with per_minute, tokens and seconds since last refill
        """
        return {
            'per_minute': self.per_minute,
            'tokens': self.tokens,
            'since_refill': self._clock() - self.last_refill,
        }
