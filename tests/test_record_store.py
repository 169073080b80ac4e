from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from resumerag.models.models import JobRecord, Profile, ResumeRecord
from resumerag.services.record_store import JOB, RESUME, InMemoryRecordStore, MongoRecordStore
from resumerag.utils.exceptions import DatabaseError, DimensionMismatchError, NotFoundError


def _resume(name, embedding=None, text=None, created_at=None):
    return ResumeRecord(
        filename=f"{name}.txt",
        raw_text=text or f"{name} resume",
        profile=Profile(name=name),
        embedding=embedding,
        owner="tester",
        created_at=created_at or datetime.utcnow(),
    )


def _cursor(*results):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(side_effect=list(results))
    return cursor


def _mongo_store(resume_cursor=None, meta_value=None):
    resumes = MagicMock()
    resumes.insert_one = AsyncMock()
    resumes.find_one = AsyncMock(return_value=None)
    if resume_cursor is not None:
        resumes.find.return_value = resume_cursor
    jobs = MagicMock()
    jobs.insert_one = AsyncMock()
    meta = MagicMock()
    meta.find_one_and_update = AsyncMock(return_value={"_id": "embedding_dimension", "value": meta_value})
    store = MongoRecordStore(collections={RESUME: resumes, JOB: jobs}, meta_coll=meta)
    return store, resumes, jobs, meta


class TestInMemoryRecordStore:
    """Test cases for the in-memory record store"""

    @pytest.mark.asyncio
    async def test_insert_and_get(self, store):
        """Test a stored record can be read back by id"""
        record = _resume("jane", [1.0, 0.0])
        assert await store.insert(record) == record.id

        fetched = await store.get(RESUME, record.id)

        assert fetched == record
        assert fetched is not record

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        """Test unknown ids raise NotFoundError"""
        with pytest.raises(NotFoundError):
            await store.get(JOB, "nope")

    @pytest.mark.asyncio
    async def test_dimension_fixed_by_first_write(self, store):
        """Test later writes must match the first embedding size"""
        await store.insert(_resume("a", [1.0, 0.0]))

        with pytest.raises(DimensionMismatchError):
            await store.insert(_resume("b", [1.0, 0.0, 0.0]))
        assert store.dimension == 2

    @pytest.mark.asyncio
    async def test_list_newest_first_with_paging(self, store):
        """Test list order and next_offset"""
        base = datetime(2024, 1, 1)
        for i in range(3):
            await store.insert(_resume(f"r{i}", created_at=base + timedelta(minutes=i)))

        first = await store.list(RESUME, limit=2)
        second = await store.list(RESUME, limit=2, offset=first.next_offset)

        assert [r.profile.name for r in first.items] == ["r2", "r1"]
        assert first.next_offset == 2
        assert [r.profile.name for r in second.items] == ["r0"]
        assert second.next_offset is None

    @pytest.mark.asyncio
    async def test_list_query_filter(self, store):
        """Test q filters on the resume text, ignoring case"""
        await store.insert(_resume("a", text="Senior Python developer"))
        await store.insert(_resume("b", text="Graphic designer"))

        page = await store.list(RESUME, limit=10, q="PYTHON")

        assert [r.profile.name for r in page.items] == ["a"]

    @pytest.mark.asyncio
    async def test_similarity_topk_skips_unembedded_and_keeps_ties(self, store):
        """Test ranking, ties in insertion order, and records without vectors"""
        first = _resume("first", [1.0, 0.0])
        second = _resume("second", [1.0, 0.0])
        other = _resume("other", [0.0, 1.0])
        for r in (other, first, _resume("bare"), second):
            await store.insert(r)

        ranked = await store.similarity_topk([1.0, 0.0], k=5)

        assert [r.profile.name for r, _ in ranked] == ["first", "second", "other"]
        assert ranked[0][1] == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_scan_all(self, store):
        """Test scan_all returns embedded records of one kind in insertion order"""
        job = JobRecord(title="Engineer", owner="tester", embedding=[0.0, 1.0])
        await store.insert(job)
        await store.insert(_resume("a", [1.0, 0.0]))
        await store.insert(_resume("b"))

        assert [r.profile.name for r in await store.scan_all(RESUME)] == ["a"]
        assert [j.id for j in await store.scan_all(JOB)] == [job.id]


class TestMongoRecordStore:
    """Test cases for the MongoDB record store with mocked collections"""

    @pytest.mark.asyncio
    async def test_insert_records_dimension(self):
        """Test insert establishes the dimension and writes the document"""
        store, resumes, _, meta = _mongo_store(meta_value=2)
        record = _resume("jane", [1.0, 0.0])

        await store.insert(record)

        meta.find_one_and_update.assert_awaited_once()
        resumes.insert_one.assert_awaited_once()
        assert resumes.insert_one.call_args[0][0]["id"] == record.id

    @pytest.mark.asyncio
    async def test_insert_dimension_mismatch(self):
        """Test a vector of the wrong size is rejected before writing"""
        store, resumes, _, _ = _mongo_store(meta_value=3)

        with pytest.raises(DimensionMismatchError):
            await store.insert(_resume("jane", [1.0, 0.0]))
        resumes.insert_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_driver_errors_become_database_errors(self):
        """Test foreign driver exceptions are wrapped"""
        store, resumes, _, _ = _mongo_store(meta_value=2)
        resumes.insert_one.side_effect = RuntimeError("connection reset")

        with pytest.raises(DatabaseError) as exc_info:
            await store.insert(_resume("jane", [1.0, 0.0]))
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_get_missing(self):
        """Test a missing document raises NotFoundError"""
        store, _, _, _ = _mongo_store()

        with pytest.raises(NotFoundError):
            await store.get(RESUME, "nope")

    @pytest.mark.asyncio
    async def test_list_applies_regex_filter(self):
        """Test q becomes a case-insensitive regex on the resume text"""
        doc = _resume("jane").model_dump()
        cursor = _cursor([doc])
        store, resumes, _, _ = _mongo_store(resume_cursor=cursor)

        page = await store.list(RESUME, limit=10, q="py.thon")

        query = resumes.find.call_args[0][0]
        assert query == {"raw_text": {"$regex": r"py\.thon", "$options": "i"}}
        cursor.sort.assert_called_with("created_at", -1)
        assert page.items[0].profile.name == "jane"
        assert page.next_offset is None

    @pytest.mark.asyncio
    async def test_similarity_topk(self):
        """Test ranking over vectors loaded from the collection"""
        a = _resume("a", [0.0, 1.0])
        b = _resume("b", [1.0, 0.0])
        rows = [{"id": a.id, "embedding": a.embedding}, {"id": b.id, "embedding": b.embedding}]
        cursor = _cursor(rows, [a.model_dump(), b.model_dump()])
        store, _, _, _ = _mongo_store(resume_cursor=cursor)

        ranked = await store.similarity_topk([1.0, 0.0], k=1)

        assert len(ranked) == 1
        assert ranked[0][0].id == b.id
        assert ranked[0][1] == pytest.approx(1.0)
