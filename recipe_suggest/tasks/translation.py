"""Celery task for learned-cache usage tracking."""

import logging

from sqlalchemy.orm import Session

from recipe_suggest.celery_app import app as celery_app
from recipe_suggest.database import SessionLocal
from recipe_suggest.exceptions import StoreUnavailable
from recipe_suggest.services.learned_cache import LearnedCacheStore

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=2)
def record_translation_usage(self, normalized: str) -> dict:
    """Bump a learned translation's usage count, promoting it at the threshold."""
    db: Session = SessionLocal()
    try:
        count = LearnedCacheStore(db).record_usage(normalized)
        return {"normalized": normalized, "usage_count": count}
    except StoreUnavailable as e:
        raise self.retry(exc=e, countdown=30) from e
    finally:
        db.close()
