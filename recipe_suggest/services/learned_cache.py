"""Learned translation cache with usage tracking and promotion."""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from recipe_suggest.config import get_settings
from recipe_suggest.database import store_operation
from recipe_suggest.models.dictionary_entry import DictionaryEntry
from recipe_suggest.models.enums import EntrySource
from recipe_suggest.models.learned_cache_entry import LearnedCacheEntry
from recipe_suggest.models.mixins import utcnow

logger = logging.getLogger(__name__)


class LearnedCacheStore:
    """Store for AI-derived translations.

    Entries live for a year. Each reuse bumps a counter, and an entry whose
    counter reaches the promotion threshold moves into the dictionary.
    """

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    @store_operation
    def get(self, normalized: str, now: datetime | None = None) -> LearnedCacheEntry | None:
        """Get a live entry by normalized source text."""
        now = now or utcnow()
        return (
            self.db.query(LearnedCacheEntry)
            .filter(
                LearnedCacheEntry.normalized_source == normalized,
                LearnedCacheEntry.expires_at > now,
            )
            .first()
        )

    @store_operation
    def get_by_english(
        self, canonical_english: str, now: datetime | None = None
    ) -> LearnedCacheEntry | None:
        """Get a live entry by canonical English name."""
        now = now or utcnow()
        return (
            self.db.query(LearnedCacheEntry)
            .filter(
                LearnedCacheEntry.canonical_english == canonical_english,
                LearnedCacheEntry.expires_at > now,
            )
            .order_by(LearnedCacheEntry.id)
            .first()
        )

    @store_operation
    def create_if_absent(
        self,
        normalized: str,
        source_text: str,
        canonical_english: str,
        category: str = "other",
        general_form: str | None = None,
        nutrition_per_100g: dict | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Create an entry unless one already exists.

        Returns:
            True if this call created the entry, False if it lost the race
        """
        now = now or utcnow()
        entry = LearnedCacheEntry(
            normalized_source=normalized,
            source_text=source_text,
            canonical_english=canonical_english,
            general_form=general_form or canonical_english,
            category=category,
            nutrition_per_100g=nutrition_per_100g,
            added_by=EntrySource.AI.value,
            added_at=now,
            usage_count=1,
            last_used_at=now,
            expires_at=now + timedelta(days=self.settings.learned_cache_ttl_days),
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Learned cache entry '{normalized}' already exists, keeping existing")
            return False
        logger.info(f"Cached AI translation '{normalized}' -> '{canonical_english}'")
        return True

    def record_usage(self, normalized: str, now: datetime | None = None) -> int | None:
        """Atomically bump the usage counter and promote at the threshold.

        Returns:
            The new usage count, or None if no live entry exists
        """
        now = now or utcnow()
        if not self._bump(normalized, now):
            logger.debug(f"No live learned cache entry for '{normalized}'")
            return None

        entry = self._find(normalized)
        if entry is None:
            return None
        count = entry.usage_count
        if count >= self.settings.promotion_threshold:
            self._promote(entry, now)
        return count

    @store_operation
    def _bump(self, normalized: str, now: datetime) -> bool:
        updated = (
            self.db.query(LearnedCacheEntry)
            .filter(
                LearnedCacheEntry.normalized_source == normalized,
                LearnedCacheEntry.expires_at > now,
            )
            .update(
                {
                    LearnedCacheEntry.usage_count: LearnedCacheEntry.usage_count + 1,
                    LearnedCacheEntry.last_used_at: now,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated > 0

    @store_operation
    def _find(self, normalized: str) -> LearnedCacheEntry | None:
        return (
            self.db.query(LearnedCacheEntry)
            .filter(LearnedCacheEntry.normalized_source == normalized)
            .first()
        )

    @store_operation
    def _promote(self, entry: LearnedCacheEntry, now: datetime) -> bool:
        """Copy an entry into the dictionary and remove it from the cache."""
        normalized = entry.normalized_source
        promoted = DictionaryEntry(
            normalized_source=normalized,
            source_text=entry.source_text,
            canonical_english=entry.canonical_english,
            general_form=entry.general_form,
            category=entry.category,
            nutrition_per_100g=entry.nutrition_per_100g,
            added_by=EntrySource.PROMOTED.value,
            added_at=now,
            usage_count=entry.usage_count,
        )
        self.db.add(promoted)
        self.db.delete(entry)
        try:
            self.db.commit()
        except (IntegrityError, StaleDataError) as e:
            self.db.rollback()
            logger.warning(f"Promotion of '{normalized}' skipped: {e}")
            return False
        logger.info(
            f"Promoted '{normalized}' -> '{promoted.canonical_english}' to dictionary "
            f"after {promoted.usage_count} uses"
        )
        return True

    @store_operation
    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete expired entries. Returns the number removed."""
        now = now or utcnow()
        removed = (
            self.db.query(LearnedCacheEntry)
            .filter(LearnedCacheEntry.expires_at <= now)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return removed
