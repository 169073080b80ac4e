"""
Document ingestion and job creation.

A document becomes a ResumeRecord only after both its profile and its
embedding are ready; a failure at any step leaves nothing behind in the
store. Inside a batch every document succeeds or fails on its own.
"""
import asyncio
from datetime import datetime
from typing import List, Optional

from resumerag.helpers.parsing import expand_archive, extract_text, format_from_filename, is_archive
from resumerag.helpers.profile_extraction import extract_profile
from resumerag.models.models import DocumentOutcome, JobRecord, ResumeRecord
from resumerag.services.embeddings import EmbeddingClient
from resumerag.services.record_store import RecordStore
from resumerag.utils.exceptions import ValidationError, describe_failure
from resumerag.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)


class IngestionService:

    # Resume processing status values
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    def __init__(self, store: RecordStore, embedder: EmbeddingClient):
        self.store = store
        self.embedder = embedder

    async def _build_resume(self, filename: str, data: bytes, owner: str) -> ResumeRecord:
        loop = asyncio.get_running_loop()

        with PerformanceMonitor(f"text extraction for {filename}", logger):
            raw_text = await loop.run_in_executor(None, extract_text, data, format_from_filename(filename))

        # profile extraction and embedding are independent of each other
        with PerformanceMonitor(f"profile + embedding for {filename}", logger, threshold_ms=5000):
            profile, embedding = await asyncio.gather(
                loop.run_in_executor(None, extract_profile, raw_text),
                self.embedder.aembed(raw_text),
            )

        return ResumeRecord(
            filename=filename,
            raw_text=raw_text,
            profile=profile,
            embedding=embedding,
            owner=owner,
            processing_status=self.STATUS_COMPLETED,
        )

    async def process_document(self, filename: str, data: bytes, owner: str) -> DocumentOutcome:
        try:
            record = await self._build_resume(filename, data, owner)
            await self.store.insert(record)
        except Exception as e:
            logger.error(f"Failed to process {filename}: {e}")
            return DocumentOutcome(filename=filename, status=self.STATUS_FAILED, error=describe_failure(e))

        logger.info(f"Stored resume {record.id} from {filename}")
        return DocumentOutcome(
            filename=filename,
            status=self.STATUS_COMPLETED,
            id=record.id,
            created_at=record.created_at,
        )

    async def ingest_file(self, filename: str, data: bytes, owner: str) -> List[DocumentOutcome]:
        """Ingest one uploaded file; a ZIP archive yields one outcome per document."""
        if not is_archive(filename):
            return [await self.process_document(filename, data, owner)]

        try:
            documents = expand_archive(data)
        except Exception as e:
            logger.error(f"Failed to expand archive {filename}: {e}")
            return [DocumentOutcome(filename=filename, status=self.STATUS_FAILED, error=describe_failure(e))]

        logger.info(f"Archive {filename} holds {len(documents)} supported documents")
        outcomes = []
        for name, payload in documents:
            outcomes.append(await self.process_document(name, payload, owner))
        return outcomes

    async def ingest_files(self, files: List[tuple], owner: str) -> List[DocumentOutcome]:
        outcomes = []
        for filename, data in files:
            outcomes.extend(await self.ingest_file(filename, data, owner))
        return outcomes

    async def create_job(
        self,
        owner: str,
        title: Optional[str],
        description: str = "",
        required_skills: Optional[List[str]] = None,
        experience_required: int = 0,
        location: str = "",
    ) -> JobRecord:
        if not title or not title.strip():
            raise ValidationError("Title is required", field="title", error_code="FIELD_REQUIRED")

        job = JobRecord(
            title=title,
            description=description or "",
            required_skills=list(required_skills or []),
            experience_required=experience_required or 0,
            location=location or "",
            owner=owner,
            created_at=datetime.utcnow(),
        )
        job.embedding = await self.embedder.aembed(job.raw_text)
        await self.store.insert(job)
        logger.info(f"Created job {job.id} ({job.title})")
        return job
