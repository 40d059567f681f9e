"""Generation job model for async suggestion generation."""

from sqlalchemy import JSON, Column, DateTime, String, Text

from recipe_suggest.database import Base
from recipe_suggest.models.enums import JobState
from recipe_suggest.models.mixins import ExpiringMixin, utcnow


class GenerationJob(Base, ExpiringMixin):
    """Status record polled by clients while a suggestion is generated."""

    __tablename__ = "generation_jobs"

    job_id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=JobState.PENDING.value, index=True)
    request_cache_key = Column(String(1024), nullable=True)
    result = Column(JSON, nullable=True)
    warning = Column(Text, nullable=True)
    compatibility_notes = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)
