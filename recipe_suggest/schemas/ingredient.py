"""Ingredient lookup and nutrition schemas."""

from pydantic import BaseModel, Field

from recipe_suggest.schemas.suggestion import NutritionValues


class IngredientLookupRequest(BaseModel):
    ingredients: list[str] = Field(..., min_length=1, max_length=30)


class IngredientLookupResult(BaseModel):
    original: str
    normalized: str
    canonical_english: str
    category: str
    source: str
    general_form: str | None = None
    nutrition_per_100g: NutritionValues | None = None
    nutrition_source: str


class IngredientLookupResponse(BaseModel):
    results: list[IngredientLookupResult]
    failed_ingredients: list[str] = []


class NutritionIngredient(BaseModel):
    """An ingredient with an amount, e.g. 2 tbsp fish sauce."""

    name: str = Field(..., min_length=1, max_length=255)
    amount: str | float | None = None
    unit: str | None = Field(None, max_length=50)


class NutritionRequest(BaseModel):
    ingredients: list[NutritionIngredient] = Field(..., min_length=1, max_length=50)
    servings: int = Field(1, ge=1, le=50)


class NutritionResponse(BaseModel):
    total: NutritionValues
    per_serving: NutritionValues
    servings: int
    failed_ingredients: list[str] = []
