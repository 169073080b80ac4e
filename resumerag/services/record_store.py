"""
Record store contract consumed by ingestion, search and matching.

Two implementations: MongoRecordStore (motor) for deployments and
InMemoryRecordStore for tests and single-process setups. Both enforce one
embedding dimensionality per store, established by the first write.
"""
import asyncio
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
from pymongo import ReturnDocument

from resumerag import config
from resumerag.models.models import JobRecord, Page, ResumeRecord
from resumerag.services.embeddings import cosine_similarity
from resumerag.utils.exceptions import DimensionMismatchError, ExceptionContext, NotFoundError
from resumerag.utils.logging_config import get_logger

logger = get_logger(__name__)

Record = Union[ResumeRecord, JobRecord]

RESUME = "resume"
JOB = "job"

_MODELS = {RESUME: ResumeRecord, JOB: JobRecord}


class RecordStore(ABC):

    @abstractmethod
    async def insert(self, record: Record) -> str:
        ...

    @abstractmethod
    async def get(self, kind: str, record_id: str) -> Record:
        ...

    @abstractmethod
    async def list(self, kind: str, limit: int, offset: int = 0, q: Optional[str] = None) -> Page:
        ...

    @abstractmethod
    async def similarity_topk(self, embedding: List[float], k: int) -> List[Tuple[ResumeRecord, float]]:
        """Top-k resumes by cosine similarity to ``embedding``, best first.

        Only resumes with a stored embedding take part; equal similarities
        keep insertion order.
        """

    @abstractmethod
    async def scan_all(self, kind: str) -> List[Record]:
        """Every record of ``kind`` with an embedding, in insertion order."""

    async def ping(self) -> bool:
        return True


def _matches_query(record: Record, q: Optional[str]) -> bool:
    if not q:
        return True
    return q.lower() in record.raw_text.lower()


def _rank(query: List[float], candidates: List[Tuple[Record, List[float]]], k: int):
    scored = [(rec, cosine_similarity(query, vec)) for rec, vec in candidates]
    # sorted() is stable, ties keep insertion order
    return sorted(scored, key=lambda pair: pair[1], reverse=True)[:k]


class InMemoryRecordStore(RecordStore):

    def __init__(self, dimension: Optional[int] = None):
        self.dimension = dimension
        self._records: Dict[str, List[Record]] = {RESUME: [], JOB: []}
        self._lock = asyncio.Lock()

    async def insert(self, record: Record) -> str:
        async with self._lock:
            if record.embedding is not None:
                if self.dimension is None:
                    self.dimension = len(record.embedding)
                elif len(record.embedding) != self.dimension:
                    raise DimensionMismatchError(self.dimension, len(record.embedding))
            self._records[record.kind].append(record.model_copy(deep=True))
        return record.id

    async def get(self, kind: str, record_id: str) -> Record:
        for rec in self._records[kind]:
            if rec.id == record_id:
                return rec.model_copy(deep=True)
        raise NotFoundError(kind, record_id)

    async def list(self, kind: str, limit: int, offset: int = 0, q: Optional[str] = None) -> Page:
        rows = [r for r in self._records[kind] if _matches_query(r, q)]
        rows = sorted(rows, key=lambda r: r.created_at, reverse=True)
        window = rows[offset:offset + limit + 1]
        has_more = len(window) > limit
        return Page(items=window[:limit], next_offset=offset + limit if has_more else None)

    async def similarity_topk(self, embedding: List[float], k: int) -> List[Tuple[ResumeRecord, float]]:
        candidates = [(r, r.embedding) for r in self._records[RESUME] if r.embedding is not None]
        return [(rec.model_copy(deep=True), sim) for rec, sim in _rank(embedding, candidates, k)]

    async def scan_all(self, kind: str) -> List[Record]:
        return [r.model_copy(deep=True) for r in self._records[kind] if r.embedding is not None]


class MongoRecordStore(RecordStore):

    DIMENSION_KEY = "embedding_dimension"

    def __init__(self, collections: Optional[Dict[str, object]] = None, meta_coll=None):
        if collections is None or meta_coll is None:
            from resumerag.services import db
            collections = collections or {RESUME: db.resumes_coll, JOB: db.jobs_coll}
            meta_coll = meta_coll or db.store_meta_coll
        self.collections = collections
        self.meta_coll = meta_coll

    async def _ensure_dimension(self, size: int) -> None:
        # $setOnInsert makes the first writer establish the dimension atomically
        meta = await self.meta_coll.find_one_and_update(
            {"_id": self.DIMENSION_KEY},
            {"$setOnInsert": {"value": size}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        expected = int(meta["value"])
        if expected != size:
            raise DimensionMismatchError(expected, size)

    async def insert(self, record: Record) -> str:
        with ExceptionContext("insert", logger, collection=record.kind, record_id=record.id):
            if record.embedding is not None:
                await self._ensure_dimension(len(record.embedding))
            await self.collections[record.kind].insert_one(record.model_dump())
        return record.id

    async def get(self, kind: str, record_id: str) -> Record:
        with ExceptionContext("get", logger, collection=kind, record_id=record_id):
            doc = await self.collections[kind].find_one({"id": record_id})
        if not doc:
            raise NotFoundError(kind, record_id)
        return _MODELS[kind].model_validate(doc)

    async def list(self, kind: str, limit: int, offset: int = 0, q: Optional[str] = None) -> Page:
        query = {}
        if q:
            pattern = {"$regex": re.escape(q), "$options": "i"}
            if kind == RESUME:
                query = {"raw_text": pattern}
            else:
                query = {"$or": [{"title": pattern}, {"description": pattern}, {"required_skills": pattern}]}

        with ExceptionContext("list", logger, collection=kind):
            cursor = (
                self.collections[kind]
                .find(query, {"embedding": 0})
                .sort("created_at", -1)
                .skip(offset)
                .limit(limit + 1)
            )
            docs = await cursor.to_list(length=limit + 1)

        has_more = len(docs) > limit
        items = [_MODELS[kind].model_validate(d) for d in docs[:limit]]
        return Page(items=items, next_offset=offset + limit if has_more else None)

    async def similarity_topk(self, embedding: List[float], k: int) -> List[Tuple[ResumeRecord, float]]:
        coll = self.collections[RESUME]
        with ExceptionContext("similarity_topk", logger, collection=RESUME):
            cursor = coll.find({"embedding": {"$ne": None}}, {"id": 1, "embedding": 1}).sort("_id", 1)
            rows = await cursor.to_list(length=None)
            if not rows:
                return []

            matrix = np.asarray([r["embedding"] for r in rows], dtype=np.float64)
            query = np.asarray(embedding, dtype=np.float64)
            if matrix.shape[1] != query.shape[0]:
                raise DimensionMismatchError(matrix.shape[1], query.shape[0])

            norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
            dots = matrix @ query
            sims = np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)
            sims = np.clip(sims, -1.0, 1.0)
            order = np.argsort(-sims, kind="stable")[:k]

            ids = [rows[i]["id"] for i in order]
            docs = await coll.find({"id": {"$in": ids}}).to_list(length=None)

        by_id = {d["id"]: ResumeRecord.model_validate(d) for d in docs}
        return [(by_id[rows[i]["id"]], float(sims[i])) for i in order if rows[i]["id"] in by_id]

    async def scan_all(self, kind: str) -> List[Record]:
        with ExceptionContext("scan_all", logger, collection=kind):
            cursor = self.collections[kind].find({"embedding": {"$ne": None}}).sort("_id", 1)
            docs = await cursor.to_list(length=None)
        return [_MODELS[kind].model_validate(d) for d in docs]

    async def ping(self) -> bool:
        from resumerag.services import db
        return await db.ping()


_store: Optional[RecordStore] = None


def get_record_store() -> RecordStore:
    global _store
    if _store is None:
        if config.RECORD_STORE == "memory":
            logger.info("Using in-memory record store")
            _store = InMemoryRecordStore()
        else:
            _store = MongoRecordStore()
    return _store
