"""Suggestion cache key generation and settings quantization."""

from dataclasses import dataclass

from recipe_suggest.models.enums import MealType

MIN_SERVINGS = 1
MAX_SERVINGS = 5
COOKING_TIME_BUCKETS = (15, 30, 45, 60, 90, 120)


@dataclass(frozen=True)
class QuantizedSettings:
    """Request settings snapped to the values that take part in cache keys."""

    servings: int
    meal_type: str
    max_cooking_time: int

    def to_dict(self) -> dict:
        return {
            "servings": self.servings,
            "meal_type": self.meal_type,
            "max_cooking_time": self.max_cooking_time,
        }


def quantize_time(minutes: int) -> int:
    """Snap a time ceiling down to the nearest bucket (minimum 15)."""
    eligible = [bucket for bucket in COOKING_TIME_BUCKETS if bucket <= minutes]
    return eligible[-1] if eligible else COOKING_TIME_BUCKETS[0]


def quantize(servings: int, meal_type: str | None, max_cooking_time: int) -> QuantizedSettings:
    """Quantize raw request settings."""
    clamped = max(MIN_SERVINGS, min(MAX_SERVINGS, servings))
    meal = (meal_type or MealType.NONE.value).lower()
    if meal not in {m.value for m in MealType}:
        meal = MealType.NONE.value
    return QuantizedSettings(
        servings=clamped,
        meal_type=meal,
        max_cooking_time=quantize_time(max_cooking_time),
    )


def generate_key(ingredients: list[str], settings: QuantizedSettings) -> str:
    """Build a cache key from ingredient names and quantized settings.

    Ingredient order does not affect the key. Disliked ingredients, skill
    level and cooking methods never take part.
    """
    names = sorted({name for name in ingredients if name})
    parts = [
        *names,
        f"s{settings.servings}",
        settings.meal_type,
        f"t{settings.max_cooking_time}",
    ]
    return "|".join(parts)
