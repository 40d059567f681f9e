"""Generation job persistence."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from recipe_suggest.config import get_settings
from recipe_suggest.database import store_operation
from recipe_suggest.exceptions import JobAccessDenied, JobNotFound
from recipe_suggest.models.enums import JobState
from recipe_suggest.models.generation_job import GenerationJob
from recipe_suggest.models.mixins import utcnow

logger = logging.getLogger(__name__)


class JobStore:
    """Create, poll and finish generation jobs."""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    @store_operation
    def create(
        self, user_id: str, request_cache_key: str, now: datetime | None = None
    ) -> GenerationJob:
        """Create a pending job."""
        now = now or utcnow()
        job = GenerationJob(
            job_id=str(uuid.uuid4()),
            user_id=user_id,
            status=JobState.PENDING.value,
            request_cache_key=request_cache_key,
            created_at=now,
            expires_at=now + timedelta(days=self.settings.job_ttl_days),
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        return job

    @store_operation
    def load(self, job_id: str, now: datetime | None = None) -> GenerationJob | None:
        """Get a live job regardless of owner."""
        now = now or utcnow()
        return (
            self.db.query(GenerationJob)
            .filter(GenerationJob.job_id == job_id, GenerationJob.expires_at > now)
            .first()
        )

    def get_for_user(self, job_id: str, user_id: str) -> GenerationJob:
        """Get a job owned by a user.

        Raises:
            JobNotFound: if the job does not exist or has expired
            JobAccessDenied: if the job belongs to someone else
        """
        job = self.load(job_id)
        if job is None:
            raise JobNotFound(f"Job {job_id} not found")
        if job.user_id != user_id:
            raise JobAccessDenied(f"Job {job_id} belongs to another user")
        return job

    @store_operation
    def mark_processing(self, job: GenerationJob) -> GenerationJob:
        job.status = JobState.PROCESSING.value
        self.db.commit()
        return job

    @store_operation
    def complete(
        self,
        job: GenerationJob,
        result: list[dict[str, Any]],
        warning: str | None = None,
        compatibility_notes: dict[str, Any] | None = None,
    ) -> GenerationJob:
        job.status = JobState.COMPLETED.value
        job.result = result
        job.warning = warning
        job.compatibility_notes = compatibility_notes
        job.error = None
        job.completed_at = utcnow()
        self.db.commit()
        logger.info(f"Job {job.job_id} completed")
        return job

    @store_operation
    def fail(self, job: GenerationJob, error: str) -> GenerationJob:
        job.status = JobState.FAILED.value
        job.error = error
        job.completed_at = utcnow()
        self.db.commit()
        logger.warning(f"Job {job.job_id} failed: {error}")
        return job

    @store_operation
    def purge_expired(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        removed = (
            self.db.query(GenerationJob)
            .filter(GenerationJob.expires_at <= now)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return removed
