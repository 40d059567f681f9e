"""Pydantic schemas for API requests and responses."""

from recipe_suggest.schemas.dictionary import DictionaryEntryCreate, DictionaryEntryResponse
from recipe_suggest.schemas.ingredient import (
    IngredientLookupRequest,
    IngredientLookupResponse,
    NutritionRequest,
    NutritionResponse,
)
from recipe_suggest.schemas.suggestion import (
    JobStatusResponse,
    Suggestion,
    SuggestionRequest,
    SuggestionResponse,
    UsageResponse,
)

__all__ = [
    "SuggestionRequest",
    "SuggestionResponse",
    "Suggestion",
    "JobStatusResponse",
    "UsageResponse",
    "IngredientLookupRequest",
    "IngredientLookupResponse",
    "NutritionRequest",
    "NutritionResponse",
    "DictionaryEntryCreate",
    "DictionaryEntryResponse",
]
