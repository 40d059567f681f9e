"""Schemas for recipe payloads returned by the LLM.

The model answers in camelCase; aliases map it onto snake_case fields.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _LLMPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GeneratedIngredient(_LLMPayload):
    """Ingredient line of a generated recipe."""

    name: str
    vietnamese_name: str | None = Field(None, alias="vietnameseName")
    amount: str | None = None
    unit: str | None = None
    importance: str = "required"

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("importance", mode="before")
    @classmethod
    def normalize_importance(cls, v: Any) -> str:
        return "optional" if str(v or "").lower() == "optional" else "required"


class GeneratedStep(_LLMPayload):
    """Step of a generated recipe."""

    step_number: int = Field(..., alias="stepNumber")
    instruction: str
    duration: int | None = None


class GeneratedRecipe(_LLMPayload):
    """One recipe as produced by the LLM."""

    name: str
    description: str | None = None
    used_ingredients: list[str] = Field(default_factory=list, alias="usedIngredients")
    ingredients: list[GeneratedIngredient] = Field(..., min_length=1)
    steps: list[GeneratedStep] = Field(default_factory=list)
    cooking_time: int = Field(..., alias="cookingTime", ge=0)
    difficulty: str | None = None
    servings: int | None = None


class CompatibilityAnalysis(_LLMPayload):
    """The model's verdict on which requested ingredients belong in one dish."""

    compatible_ingredients: list[str] = Field(default_factory=list, alias="compatibleIngredients")
    incompatible_ingredients: list[str] = Field(
        default_factory=list, alias="incompatibleIngredients"
    )
    compatibility_note: str | None = Field(None, alias="compatibilityNote")
    separate_search_suggestion: str | None = Field(None, alias="separateSearchSuggestion")
