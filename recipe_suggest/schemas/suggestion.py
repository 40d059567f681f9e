"""Suggestion request, response and job schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recipe_suggest.models.enums import JobState, MealType


class SuggestionRequest(BaseModel):
    """Ask for a recipe suggestion from ingredients on hand."""

    ingredients: list[str] = Field(..., max_length=30)
    servings: int = Field(2, ge=1, le=20)
    meal_type: MealType = MealType.NONE
    max_cooking_time: int = Field(30, ge=1, le=600)
    disliked_ingredients: list[str] = Field(default_factory=list, max_length=30)
    skill_level: str | None = Field(None, max_length=50)
    preferred_cooking_methods: list[str] = Field(default_factory=list, max_length=10)


class SuggestionIngredient(BaseModel):
    canonical_name: str
    display_name: str | None = None
    amount: str | None = None
    unit: str | None = None
    importance: str = "required"


class SuggestionStep(BaseModel):
    step_number: int
    instruction: str
    duration_minutes: int | None = None


class NutritionValues(BaseModel):
    """Macronutrients in kcal and grams."""

    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    fiber: float = 0


class Suggestion(BaseModel):
    """A cooked-dish recommendation as stored in the cache and job results."""

    name: str
    description: str | None = None
    ingredients: list[SuggestionIngredient]
    used_ingredients: list[str] = []
    steps: list[SuggestionStep] = []
    cooking_time_minutes: int
    difficulty: str | None = None
    servings: int
    nutrition_per_serving: NutritionValues | None = None


class RateLimitInfo(BaseModel):
    limit: int
    remaining: int
    current_count: int
    reset_at: datetime


class TranslationInfo(BaseModel):
    original: str
    canonical_english: str
    source: str


class SuggestionResponse(BaseModel):
    """Either a cache hit (completed) or a queued job (pending)."""

    status: str
    cache_hit: bool
    match_type: str | None = None
    cache_key: str | None = None
    match_score: int | None = None
    suggestions: list[Suggestion] = []
    job_id: str | None = None
    estimated_seconds: int | None = None
    translations: list[TranslationInfo] = []
    failed_ingredients: list[str] = []
    rate_limit: RateLimitInfo


class JobStatusResponse(BaseModel):
    """Poll result for a generation job."""

    model_config = ConfigDict(from_attributes=True)

    job_id: str
    status: str
    result: list[Suggestion] | None = None
    warning: str | None = None
    compatibility_notes: dict[str, Any] | None = None
    error: str | None = None
    created_at: datetime
    completed_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def hide_processing(cls, v: Any) -> Any:
        # Clients only see pending, completed or failed
        return JobState.PENDING.value if v == JobState.PROCESSING else v


class UsageResponse(BaseModel):
    """Current daily quota for the caller."""

    rate_limit: RateLimitInfo
