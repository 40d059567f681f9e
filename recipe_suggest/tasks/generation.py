"""Celery task for background suggestion generation."""

import asyncio
import logging

from sqlalchemy.orm import Session

from recipe_suggest.celery_app import app as celery_app
from recipe_suggest.database import SessionLocal
from recipe_suggest.exceptions import StoreUnavailable
from recipe_suggest.services.generation_worker import GenerationWorker
from recipe_suggest.services.job_store import JobStore

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3, acks_late=True)
def generate_suggestion(self, message: dict) -> dict:
    """Generate a suggestion for a queued job.

    Args:
        message: job_id, user_id, ingredients, translations, cache_key, settings

    Returns:
        dict with the outcome of the job
    """
    db: Session = SessionLocal()
    try:
        worker = GenerationWorker(db)
        return asyncio.run(worker.process(message))
    except StoreUnavailable as e:
        if self.request.retries < self.max_retries:
            logger.warning(f"Store unavailable for job {message.get('job_id')}, retrying: {e}")
            raise self.retry(exc=e, countdown=60) from e
        logger.error(f"Giving up on job {message.get('job_id')}: {e}")
        _mark_failed(db, message.get("job_id"), "Storage unavailable")
        return {"success": False, "job_id": message.get("job_id"), "error": str(e)}
    finally:
        db.close()


def _mark_failed(db: Session, job_id: str | None, error: str) -> None:
    if not job_id:
        return
    jobs = JobStore(db)
    try:
        job = jobs.load(job_id)
        if job is not None:
            jobs.fail(job, error)
    except StoreUnavailable:
        logger.error(f"Could not mark job {job_id} as failed")
