"""SQLAlchemy models."""

from recipe_suggest.models.dictionary_entry import DictionaryEntry
from recipe_suggest.models.generation_job import GenerationJob
from recipe_suggest.models.learned_cache_entry import LearnedCacheEntry
from recipe_suggest.models.rate_limit_counter import RateLimitCounter
from recipe_suggest.models.suggestion_cache import IngredientIndexEntry, SuggestionCacheEntry

__all__ = [
    "DictionaryEntry",
    "LearnedCacheEntry",
    "SuggestionCacheEntry",
    "IngredientIndexEntry",
    "GenerationJob",
    "RateLimitCounter",
]
