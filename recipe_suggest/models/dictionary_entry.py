"""Dictionary model for permanent ingredient translations."""

from sqlalchemy import JSON, Column, DateTime, Integer, String

from recipe_suggest.database import Base
from recipe_suggest.models.enums import EntrySource
from recipe_suggest.models.mixins import TimestampMixin, utcnow


class DictionaryEntry(Base, TimestampMixin):
    """Curated or promoted translation. Never expires."""

    __tablename__ = "dictionary_entries"

    id = Column(Integer, primary_key=True, index=True)
    normalized_source = Column(String(255), nullable=False, unique=True, index=True)
    source_text = Column(String(255), nullable=False)
    canonical_english = Column(String(255), nullable=False, index=True)
    general_form = Column(String(255), nullable=True)
    category = Column(String(50), nullable=False, default="other")
    nutrition_per_100g = Column(JSON, nullable=True)
    added_by = Column(String(20), nullable=False, default=EntrySource.BOOTSTRAP.value)
    added_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    usage_count = Column(Integer, nullable=False, default=0)
