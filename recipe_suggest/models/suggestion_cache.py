"""Suggestion cache and its reverse ingredient index."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint

from recipe_suggest.database import Base
from recipe_suggest.models.mixins import ExpiringMixin, utcnow


class SuggestionCacheEntry(Base, ExpiringMixin):
    """Generated suggestions stored under the key derived from their ingredients."""

    __tablename__ = "suggestion_cache_entries"

    id = Column(Integer, primary_key=True, index=True)
    cache_key = Column(String(1024), nullable=False, unique=True, index=True)
    suggestions = Column(JSON, nullable=False)
    request_settings = Column(JSON, nullable=False)
    ingredients = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class IngredientIndexEntry(Base, ExpiringMixin):
    """One row per ingredient present in a cached suggestion set."""

    __tablename__ = "suggestion_ingredient_index"
    __table_args__ = (
        UniqueConstraint("ingredient_name", "cache_key", name="uq_ingredient_cache_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    ingredient_name = Column(String(255), nullable=False, index=True)
    cache_key = Column(String(1024), nullable=False, index=True)
