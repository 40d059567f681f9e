"""Periodic cleanup of expired rows."""

import logging

from sqlalchemy.orm import Session

from recipe_suggest.celery_app import app as celery_app
from recipe_suggest.database import SessionLocal
from recipe_suggest.services.job_store import JobStore
from recipe_suggest.services.learned_cache import LearnedCacheStore
from recipe_suggest.services.suggestion_cache import SuggestionCacheStore

logger = logging.getLogger(__name__)


@celery_app.task
def purge_expired() -> dict:
    """Delete expired suggestions, jobs and learned translations.

    Readers already ignore expired rows; this only reclaims space.
    """
    db: Session = SessionLocal()
    try:
        result = {
            "suggestions": SuggestionCacheStore(db).purge_expired(),
            "jobs": JobStore(db).purge_expired(),
            "learned_translations": LearnedCacheStore(db).purge_expired(),
        }
        logger.info(f"Purged expired rows: {result}")
        return result
    finally:
        db.close()
