"""Suggestion cache store and its reverse ingredient index."""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recipe_suggest.config import get_settings
from recipe_suggest.database import store_operation
from recipe_suggest.models.mixins import utcnow
from recipe_suggest.models.suggestion_cache import IngredientIndexEntry, SuggestionCacheEntry

logger = logging.getLogger(__name__)


class SuggestionCacheStore:
    """Persist generated suggestions and look them up by key or ingredient."""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    @store_operation
    def get(self, cache_key: str, now: datetime | None = None) -> SuggestionCacheEntry | None:
        """Get a live entry by key."""
        now = now or utcnow()
        return (
            self.db.query(SuggestionCacheEntry)
            .filter(
                SuggestionCacheEntry.cache_key == cache_key,
                SuggestionCacheEntry.expires_at > now,
            )
            .first()
        )

    @store_operation
    def keys_for_ingredient(self, ingredient: str, now: datetime | None = None) -> list[str]:
        """Live cache keys containing an ingredient, oldest first."""
        now = now or utcnow()
        rows = (
            self.db.query(IngredientIndexEntry.cache_key)
            .filter(
                IngredientIndexEntry.ingredient_name == ingredient,
                IngredientIndexEntry.expires_at > now,
            )
            .order_by(IngredientIndexEntry.id)
            .all()
        )
        return [key for (key,) in rows]

    @store_operation
    def put(
        self,
        cache_key: str,
        suggestions: list[dict[str, Any]],
        request_settings: dict[str, Any],
        ingredients: list[str],
        now: datetime | None = None,
    ) -> SuggestionCacheEntry:
        """Store suggestions under a key, replacing any previous entry and index rows."""
        now = now or utcnow()
        expires_at = now + timedelta(hours=self.settings.suggestion_cache_ttl_hours)
        names = sorted(set(ingredients))

        entry = self._stage(cache_key, suggestions, request_settings, names, now, expires_at)
        try:
            self.db.commit()
        except IntegrityError:
            # Another writer stored the same key first; overwrite it
            self.db.rollback()
            entry = self._stage(cache_key, suggestions, request_settings, names, now, expires_at)
            self.db.commit()
        self.db.refresh(entry)
        logger.info(f"Cached {len(suggestions)} suggestion(s) under '{cache_key}'")
        return entry

    def _stage(
        self,
        cache_key: str,
        suggestions: list[dict[str, Any]],
        request_settings: dict[str, Any],
        names: list[str],
        now: datetime,
        expires_at: datetime,
    ) -> SuggestionCacheEntry:
        entry = (
            self.db.query(SuggestionCacheEntry)
            .filter(SuggestionCacheEntry.cache_key == cache_key)
            .first()
        )
        if entry is None:
            entry = SuggestionCacheEntry(cache_key=cache_key)
            self.db.add(entry)
        entry.suggestions = suggestions
        entry.request_settings = request_settings
        entry.ingredients = names
        entry.created_at = now
        entry.expires_at = expires_at

        self.db.query(IngredientIndexEntry).filter(
            IngredientIndexEntry.cache_key == cache_key
        ).delete(synchronize_session=False)
        for name in names:
            self.db.add(
                IngredientIndexEntry(
                    ingredient_name=name, cache_key=cache_key, expires_at=expires_at
                )
            )
        return entry

    @store_operation
    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete expired entries and index rows. Returns the number of entries removed."""
        now = now or utcnow()
        self.db.query(IngredientIndexEntry).filter(
            IngredientIndexEntry.expires_at <= now
        ).delete(synchronize_session=False)
        removed = (
            self.db.query(SuggestionCacheEntry)
            .filter(SuggestionCacheEntry.expires_at <= now)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return removed
