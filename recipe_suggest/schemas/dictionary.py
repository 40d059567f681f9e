"""Dictionary admin schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from recipe_suggest.schemas.suggestion import NutritionValues


class DictionaryEntryCreate(BaseModel):
    """Add a curated translation."""

    source_text: str = Field(..., min_length=1, max_length=255)
    canonical_english: str = Field(..., min_length=1, max_length=255)
    general_form: str | None = Field(None, max_length=255)
    category: str = Field("other", max_length=50)
    nutrition_per_100g: NutritionValues | None = None


class DictionaryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    source_text: str
    normalized_source: str
    canonical_english: str
    general_form: str | None
    category: str
    nutrition_per_100g: NutritionValues | None
    added_by: str
    added_at: datetime
    usage_count: int
