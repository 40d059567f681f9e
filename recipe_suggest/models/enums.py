"""Enums for model fields."""

from enum import StrEnum


class EntrySource(StrEnum):
    """Where a dictionary or learned-cache entry came from."""

    BOOTSTRAP = "bootstrap"
    PROMOTED = "promoted"
    AI = "ai"
    ADMIN = "admin"


class TranslationSource(StrEnum):
    """Which tier resolved a translation."""

    DICTIONARY = "dictionary"
    CACHE = "cache"
    AI = "ai"


class JobState(StrEnum):
    """Lifecycle of a generation job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if the job can no longer change."""
        return self in (JobState.COMPLETED, JobState.FAILED)


class MealType(StrEnum):
    """Meal types accepted in requests and cache keys."""

    NONE = "none"
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"
