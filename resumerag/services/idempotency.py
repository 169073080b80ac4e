"""
Replay-safety for mutating calls keyed by a caller-supplied UUID.

Per (key, endpoint) pair the state goes Unseen -> Recorded -> Expired. Only
successful calls are recorded. Concurrent callers that share a key are
serialised on a per-key lock, so the operation runs at most once and the
others replay its result.
"""
import asyncio
import hashlib
import json
import re
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from resumerag import config
from resumerag.models.models import IdempotencyEntry
from resumerag.utils.exceptions import IdempotencyConflictError, InvalidIdempotencyKeyError
from resumerag.utils.logging_config import get_logger

logger = get_logger(__name__)

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
SWEEP_INTERVAL_SECONDS = 3600

Operation = Callable[[], Awaitable[Tuple[int, Any]]]


def fingerprint(body: Any) -> str:
    canonical = json.dumps(body if body is not None else {}, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def validate_key(key: str) -> str:
    if not UUID_RE.match(key or ""):
        raise InvalidIdempotencyKeyError(key)
    return key.lower()


class IdempotencyGuard:

    def __init__(self, ttl_seconds: int = config.IDEMPOTENCY_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[Tuple[str, str], IdempotencyEntry] = {}
        # a lock lives only while some call for its key is in flight
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._lock_users: Dict[Tuple[str, str], int] = {}
        self._last_sweep = clock()

    def _acquire_lock(self, cache_key: Tuple[str, str]) -> asyncio.Lock:
        lock = self._locks.get(cache_key)
        if lock is None:
            lock = self._locks[cache_key] = asyncio.Lock()
        self._lock_users[cache_key] = self._lock_users.get(cache_key, 0) + 1
        return lock

    def _release_lock(self, cache_key: Tuple[str, str]) -> None:
        users = self._lock_users[cache_key] - 1
        if users:
            self._lock_users[cache_key] = users
        else:
            del self._lock_users[cache_key]
            del self._locks[cache_key]

    def _lookup(self, cache_key: Tuple[str, str]) -> Optional[IdempotencyEntry]:
        entry = self._entries.get(cache_key)
        if entry is not None and entry.expires_at <= self.clock():
            del self._entries[cache_key]
            return None
        return entry

    def purge_expired(self) -> int:
        now = self.clock()
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        self._last_sweep = now
        if expired:
            logger.debug(f"Purged {len(expired)} expired idempotency entries")
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    async def guarded_call(
        self,
        key: Optional[str],
        endpoint: str,
        body: Any,
        operation: Operation,
    ) -> Tuple[int, Any]:
        """Run ``operation`` once per (key, endpoint) and replay its result.

        ``operation`` returns ``(status_code, response_body)``. Without a key
        the operation always runs and nothing is cached.
        """
        if not key:
            return await operation()

        key = validate_key(key)
        cache_key = (key, endpoint)
        request_fingerprint = fingerprint(body)

        lock = self._acquire_lock(cache_key)
        try:
            async with lock:
                entry = self._lookup(cache_key)
                if entry is not None:
                    if entry.request_fingerprint != request_fingerprint:
                        logger.warning(f"Idempotency conflict for key {key} on {endpoint}")
                        raise IdempotencyConflictError(key, endpoint)
                    logger.info(f"Replaying stored response for key {key} on {endpoint}")
                    return entry.status_code, entry.response

                status_code, response = await operation()
                self._entries[cache_key] = IdempotencyEntry(
                    key=key,
                    endpoint=endpoint,
                    request_fingerprint=request_fingerprint,
                    status_code=status_code,
                    response=response,
                    expires_at=self.clock() + self.ttl_seconds,
                )
        finally:
            self._release_lock(cache_key)

        if self.clock() - self._last_sweep >= SWEEP_INTERVAL_SECONDS:
            self.purge_expired()
        return status_code, response


_guard: Optional[IdempotencyGuard] = None


def get_idempotency_guard() -> IdempotencyGuard:
    global _guard
    if _guard is None:
        _guard = IdempotencyGuard()
    return _guard
