import asyncio
import math
import time
from typing import Callable, Dict, Optional

from resumerag import config
from resumerag.models.models import RateLimitStatus, RateWindow
from resumerag.utils.exceptions import RateLimitExceededError, UnauthenticatedError
from resumerag.utils.logging_config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Fixed-window request counter per actor.

    One window per actor is kept. The first request of a new bucket drops
    every window left over from older buckets.
    """

    def __init__(
        self,
        limit: int = config.RATE_LIMIT_PER_WINDOW,
        window_seconds: int = config.RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._swept_bucket: Optional[int] = None
        self._lock = asyncio.Lock()

    def bucket(self, now: float) -> int:
        return int(math.floor(now / self.window_seconds))

    def _evict_before(self, bucket: int) -> None:
        stale = [actor for actor, w in self._windows.items() if w.window_bucket < bucket]
        for actor in stale:
            del self._windows[actor]
        self._swept_bucket = bucket
        if stale:
            logger.debug(f"Dropped {len(stale)} stale rate windows")

    def __len__(self) -> int:
        return len(self._windows)

    async def check(self, actor_id: Optional[str]) -> RateLimitStatus:
        if not actor_id or not str(actor_id).strip():
            raise UnauthenticatedError("Authentication required for rate limiting")

        async with self._lock:
            now = self.clock()
            bucket = self.bucket(now)
            reset_at = (bucket + 1) * self.window_seconds

            if bucket != self._swept_bucket:
                self._evict_before(bucket)

            window = self._windows.get(actor_id)
            if window is None or window.window_bucket != bucket:
                window = self._windows[actor_id] = RateWindow(actor_id=actor_id, window_bucket=bucket)

            if window.count >= self.limit:
                retry_after = max(1, int(math.ceil(reset_at - now)))
                logger.warning(f"Rate limit exceeded for actor {actor_id} in bucket {bucket}")
                raise RateLimitExceededError(self.limit, reset_at, retry_after)

            window.count += 1
            return RateLimitStatus(limit=self.limit, remaining=self.limit - window.count, reset_at=reset_at)

    def reset(self) -> None:
        self._windows.clear()
        self._swept_bucket = None


_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    global _limiter
    if _limiter is None:
        _limiter = RateLimiter()
    return _limiter
