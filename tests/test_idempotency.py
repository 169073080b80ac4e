import asyncio
import uuid

import pytest

from resumerag.services.idempotency import IdempotencyGuard, fingerprint, validate_key
from resumerag.utils.exceptions import IdempotencyConflictError, InvalidIdempotencyKeyError

ENDPOINT = "POST:/api/jobs"


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def _counting_operation(result=(201, {"id": "job-1"})):
    calls = []

    async def operation():
        calls.append(1)
        await asyncio.sleep(0)
        return result

    return operation, calls


class TestKeysAndFingerprints:
    """Test cases for key validation and request fingerprints"""

    def test_validate_key_accepts_uuid(self):
        """Test UUIDs are accepted and lowercased"""
        key = str(uuid.uuid4()).upper()
        assert validate_key(key) == key.lower()

    def test_validate_key_rejects_other_strings(self):
        """Test non-UUID keys are rejected"""
        with pytest.raises(InvalidIdempotencyKeyError):
            validate_key("not-a-uuid")

    def test_fingerprint_ignores_key_order(self):
        """Test equal payloads give equal fingerprints"""
        assert fingerprint({"a": 1, "b": [1, 2]}) == fingerprint({"b": [1, 2], "a": 1})
        assert fingerprint({"a": 1}) != fingerprint({"a": 2})


class TestIdempotencyGuard:
    """Test cases for replaying mutating calls"""

    @pytest.mark.asyncio
    async def test_no_key_always_runs(self, guard):
        """Test calls without a key are never cached"""
        operation, calls = _counting_operation()

        await guard.guarded_call(None, ENDPOINT, {"title": "x"}, operation)
        await guard.guarded_call(None, ENDPOINT, {"title": "x"}, operation)

        assert len(calls) == 2
        assert len(guard) == 0

    @pytest.mark.asyncio
    async def test_replay_same_payload(self, guard):
        """Test a repeated key with the same payload replays the first result"""
        key = str(uuid.uuid4())
        operation, calls = _counting_operation()

        first = await guard.guarded_call(key, ENDPOINT, {"title": "x"}, operation)
        second = await guard.guarded_call(key, ENDPOINT, {"title": "x"}, operation)

        assert first == second == (201, {"id": "job-1"})
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_conflict_on_different_payload(self, guard):
        """Test a repeated key with a different payload is a conflict"""
        key = str(uuid.uuid4())
        operation, calls = _counting_operation()
        await guard.guarded_call(key, ENDPOINT, {"title": "x"}, operation)

        with pytest.raises(IdempotencyConflictError) as exc_info:
            await guard.guarded_call(key, ENDPOINT, {"title": "y"}, operation)

        assert exc_info.value.status_code == 409
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_same_key_different_endpoint(self, guard):
        """Test keys are scoped to an endpoint"""
        key = str(uuid.uuid4())
        operation, calls = _counting_operation()

        await guard.guarded_call(key, ENDPOINT, {"title": "x"}, operation)
        await guard.guarded_call(key, "POST:/api/resumes", {"files": []}, operation)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_invalid_key(self, guard):
        """Test a malformed key never reaches the operation"""
        operation, calls = _counting_operation()

        with pytest.raises(InvalidIdempotencyKeyError):
            await guard.guarded_call("abc", ENDPOINT, {}, operation)
        assert calls == []

    @pytest.mark.asyncio
    async def test_concurrent_calls_run_once(self, guard):
        """Test concurrent callers sharing a key execute the operation once"""
        key = str(uuid.uuid4())
        operation, calls = _counting_operation()

        results = await asyncio.gather(*[
            guard.guarded_call(key, ENDPOINT, {"title": "x"}, operation) for _ in range(10)
        ])

        assert len(calls) == 1
        assert all(r == (201, {"id": "job-1"}) for r in results)

    @pytest.mark.asyncio
    async def test_failures_are_not_recorded(self, guard):
        """Test a failed operation can be retried with the same key"""
        key = str(uuid.uuid4())
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("provider down")
            return 201, {"id": "job-2"}

        with pytest.raises(RuntimeError):
            await guard.guarded_call(key, ENDPOINT, {"title": "x"}, flaky)
        result = await guard.guarded_call(key, ENDPOINT, {"title": "x"}, flaky)

        assert result == (201, {"id": "job-2"})
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_failed_calls_leave_no_locks(self, guard):
        """Test per-key locks are released when calls fail and nothing is recorded"""

        async def failing():
            raise RuntimeError("provider down")

        for _ in range(100):
            with pytest.raises(RuntimeError):
                await guard.guarded_call(str(uuid.uuid4()), ENDPOINT, {"title": "x"}, failing)

        assert len(guard) == 0
        assert guard._locks == {}
        assert guard._lock_users == {}

    @pytest.mark.asyncio
    async def test_locks_dropped_after_concurrent_calls(self, guard):
        """Test the shared lock goes away once every caller for the key is done"""
        key = str(uuid.uuid4())
        operation, _ = _counting_operation()

        await asyncio.gather(*[
            guard.guarded_call(key, ENDPOINT, {"title": "x"}, operation) for _ in range(5)
        ])
        with pytest.raises(IdempotencyConflictError):
            await guard.guarded_call(key, ENDPOINT, {"title": "y"}, operation)

        assert len(guard) == 1
        assert guard._locks == {}

    @pytest.mark.asyncio
    async def test_entries_expire(self):
        """Test an expired entry behaves like an unseen key"""
        clock = FakeClock()
        guard = IdempotencyGuard(ttl_seconds=60, clock=clock)
        key = str(uuid.uuid4())
        operation, calls = _counting_operation()

        await guard.guarded_call(key, ENDPOINT, {"title": "x"}, operation)
        clock.now += 61
        await guard.guarded_call(key, ENDPOINT, {"title": "y"}, operation)

        assert len(calls) == 2

    def test_purge_expired(self):
        """Test the sweep removes only expired entries"""
        clock = FakeClock()
        guard = IdempotencyGuard(ttl_seconds=60, clock=clock)
        operation, _ = _counting_operation()

        asyncio.run(guard.guarded_call(str(uuid.uuid4()), ENDPOINT, {}, operation))
        clock.now += 30
        asyncio.run(guard.guarded_call(str(uuid.uuid4()), ENDPOINT, {}, operation))
        clock.now += 40

        assert guard.purge_expired() == 1
        assert len(guard) == 1
