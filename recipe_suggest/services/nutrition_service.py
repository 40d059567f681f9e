"""Nutrition estimation with tiered lookup and a static fallback table."""

import asyncio
import json
import logging
import re
import time
from dataclasses import asdict, dataclass
from typing import Any

import httpx
from sqlalchemy.orm import Session

from recipe_suggest.exceptions import GenerationError
from recipe_suggest.services.dictionary_store import DictionaryStore
from recipe_suggest.services.learned_cache import LearnedCacheStore
from recipe_suggest.services.llm import LLMService
from recipe_suggest.services.llm_prompts import NUTRITION_SYSTEM_PROMPT, get_nutrition_prompt
from recipe_suggest.services.normalizer import normalize

logger = logging.getLogger(__name__)

NUTRIENT_KEYS = ("calories", "protein", "carbs", "fat", "fiber")


@dataclass
class NutritionData:
    """Macronutrients, per 100g or per serving depending on context."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NutritionData":
        """Build from a JSON-like dict, coercing values to floats.

        Raises:
            ValueError: if a value is not numeric
        """
        return cls(**{key: float(data.get(key) or 0) for key in NUTRIENT_KEYS})

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    def scaled(self, factor: float) -> "NutritionData":
        return NutritionData(**{key: value * factor for key, value in asdict(self).items()})

    def plus(self, other: "NutritionData") -> "NutritionData":
        return NutritionData(
            **{key: getattr(self, key) + getattr(other, key) for key in NUTRIENT_KEYS}
        )

    def rounded(self) -> "NutritionData":
        return NutritionData(**{key: round(value, 1) for key, value in asdict(self).items()})


@dataclass
class NutritionEstimate:
    """Per-100g nutrition with the tier that produced it."""

    per_100g: NutritionData
    source: str  # dictionary | cache | ai | none


@dataclass
class RecipeNutrition:
    """Nutrition totals for a whole recipe and for one serving."""

    total: NutritionData
    per_serving: NutritionData
    servings: int


# Per 100g
FALLBACK_NUTRITION: dict[str, NutritionData] = {
    "chicken": NutritionData(165, 31, 0, 3.6, 0),
    "pork": NutritionData(242, 27, 0, 14, 0),
    "beef": NutritionData(250, 26, 0, 15, 0),
    "fish": NutritionData(120, 22, 0, 3, 0),
    "shrimp": NutritionData(99, 24, 0.2, 0.3, 0),
    "egg": NutritionData(155, 13, 1.1, 11, 0),
    "tofu": NutritionData(76, 8, 1.9, 4.8, 0.3),
    "vegetable": NutritionData(25, 2, 5, 0.3, 2),
    "onion": NutritionData(40, 1.1, 9.3, 0.1, 1.7),
    "garlic": NutritionData(149, 6.4, 33, 0.5, 2.1),
    "tomato": NutritionData(18, 0.9, 3.9, 0.2, 1.2),
    "carrot": NutritionData(41, 0.9, 10, 0.2, 2.8),
    "rice": NutritionData(130, 2.7, 28, 0.3, 0.4),
    "noodle": NutritionData(138, 4.5, 25, 2.1, 1.2),
    "fish-sauce": NutritionData(35, 5.1, 3.6, 0, 0),
    "soy-sauce": NutritionData(53, 8.1, 4.9, 0, 0),
    "sugar": NutritionData(387, 0, 100, 0, 0),
    "salt": NutritionData(0, 0, 0, 0, 0),
    "oil": NutritionData(884, 0, 0, 100, 0),
    "default": NutritionData(50, 2, 8, 1, 1),
}

# Multi-word phrases are checked before single words ("ca-chua" is tomato, not fish)
_FALLBACK_PHRASES: list[tuple[str, str]] = [
    ("fish-sauce", "fish-sauce"),
    ("nuoc-mam", "fish-sauce"),
    ("soy-sauce", "soy-sauce"),
    ("xi-dau", "soy-sauce"),
    ("nuoc-tuong", "soy-sauce"),
    ("ca-chua", "tomato"),
    ("ca-rot", "carrot"),
    ("dau-an", "oil"),
    ("dau-phu", "tofu"),
    ("dau-hu", "tofu"),
]

_FALLBACK_WORDS: dict[str, str] = {
    "chicken": "chicken",
    "ga": "chicken",
    "pork": "pork",
    "heo": "pork",
    "lon": "pork",
    "beef": "beef",
    "bo": "beef",
    "fish": "fish",
    "ca": "fish",
    "shrimp": "shrimp",
    "prawn": "shrimp",
    "tom": "shrimp",
    "egg": "egg",
    "eggs": "egg",
    "trung": "egg",
    "tofu": "tofu",
    "onion": "onion",
    "scallion": "onion",
    "shallot": "onion",
    "hanh": "onion",
    "garlic": "garlic",
    "toi": "garlic",
    "tomato": "tomato",
    "carrot": "carrot",
    "rice": "rice",
    "gao": "rice",
    "com": "rice",
    "noodle": "noodle",
    "noodles": "noodle",
    "mi": "noodle",
    "bun": "noodle",
    "pho": "noodle",
    "sugar": "sugar",
    "duong": "sugar",
    "salt": "salt",
    "muoi": "salt",
    "oil": "oil",
    "vegetable": "vegetable",
    "vegetables": "vegetable",
    "rau": "vegetable",
    "cabbage": "vegetable",
    "cai": "vegetable",
}

UNIT_TO_GRAMS: dict[str, float] = {
    "g": 1,
    "gram": 1,
    "grams": 1,
    "kg": 1000,
    "ml": 1,
    "l": 1000,
    "liter": 1000,
    "tablespoon": 15,
    "tbsp": 15,
    "teaspoon": 5,
    "tsp": 5,
    "cup": 240,
    "piece": 100,
    "pieces": 100,
    "thìa": 15,
    "muỗng": 15,
    "muỗng canh": 15,
    "muỗng cà phê": 5,
    "củ": 100,
    "tép": 5,
    "trái": 50,
    "quả": 50,
    "cây": 20,
    "lá": 2,
    "bó": 50,
    "miếng": 100,
    "cái": 100,
    "chén": 200,
    "cốc": 240,
}

_AMOUNT_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)(?:\s+(\d+)/(\d+)|/(\d+))?")


def fallback_nutrition(name: str) -> NutritionData:
    """Static per-100g nutrition for an English or Vietnamese ingredient name."""
    key = normalize(name)
    if key in FALLBACK_NUTRITION:
        return FALLBACK_NUTRITION[key]

    for phrase, category in _FALLBACK_PHRASES:
        if phrase in key:
            return FALLBACK_NUTRITION[category]

    for word in key.split("-"):
        category = _FALLBACK_WORDS.get(word)
        if category:
            return FALLBACK_NUTRITION[category]

    return FALLBACK_NUTRITION["default"]


def parse_amount(amount: Any) -> float | None:
    """Parse "2", "1.5", "1/2" or "1 1/2". Returns None if unparseable."""
    if isinstance(amount, bool):
        return None
    if isinstance(amount, int | float):
        return float(amount)
    if not isinstance(amount, str):
        return None

    match = _AMOUNT_PATTERN.match(amount.replace(",", "."))
    if not match:
        return None
    whole, mixed_num, mixed_den, frac_den = match.groups()
    try:
        if frac_den:
            return float(whole) / float(frac_den)
        value = float(whole)
        if mixed_num:
            value += float(mixed_num) / float(mixed_den)
        return value
    except ZeroDivisionError:
        return None


def to_grams(amount: Any, unit: str | None) -> float:
    """Convert an amount in a kitchen unit to grams.

    Unknown units count 1g per unit; unparseable amounts count nothing.
    """
    value = parse_amount(amount)
    if value is None:
        return 0.0
    grams_per_unit = UNIT_TO_GRAMS.get((unit or "").strip().lower(), 1)
    return value * grams_per_unit


class NutritionService:
    """Estimate per-100g nutrition: dictionary, then learned cache, then LLM."""

    def __init__(
        self,
        db: Session,
        llm_service: LLMService | None = None,
        deadline: float | None = None,
    ):
        self.db = db
        self.llm_service = llm_service or LLMService()
        # time.monotonic() value after which the LLM tier is skipped
        self.deadline = deadline
        self.dictionary = DictionaryStore(db)
        self.learned_cache = LearnedCacheStore(db)
        self._memo: dict[str, NutritionEstimate] = {}

    async def estimate(self, canonical_english: str) -> NutritionEstimate:
        """Estimate nutrition for an ingredient. Never raises on backend failure."""
        if canonical_english in self._memo:
            return self._memo[canonical_english]

        estimate = await self._estimate_uncached(canonical_english)
        self._memo[canonical_english] = estimate
        return estimate

    async def _estimate_uncached(self, canonical_english: str) -> NutritionEstimate:
        entry = self.dictionary.get_by_english(canonical_english)
        if entry and entry.nutrition_per_100g:
            per_100g = NutritionData.from_dict(entry.nutrition_per_100g)
            return NutritionEstimate(per_100g, "dictionary")

        cached = self.learned_cache.get_by_english(canonical_english)
        if cached and cached.nutrition_per_100g:
            return NutritionEstimate(NutritionData.from_dict(cached.nutrition_per_100g), "cache")

        ai_result = await self.estimate_with_ai(canonical_english)
        if ai_result is not None:
            return NutritionEstimate(ai_result, "ai")

        return NutritionEstimate(NutritionData(), "none")

    async def estimate_with_ai(self, canonical_english: str) -> NutritionData | None:
        """Ask the LLM for per-100g values. Returns None on any backend failure."""
        remaining = None
        if self.deadline is not None:
            remaining = self.deadline - time.monotonic()
            if remaining <= 0:
                logger.info(f"Skipping AI nutrition for '{canonical_english}', time budget spent")
                return None
        try:
            result = await asyncio.wait_for(
                self.llm_service.generate_json(
                    prompt=get_nutrition_prompt(canonical_english),
                    system_prompt=NUTRITION_SYSTEM_PROMPT,
                    max_tokens=256,
                ),
                timeout=remaining,
            )
            if not isinstance(result, dict):
                raise ValueError(f"expected an object, got {type(result).__name__}")
            return NutritionData.from_dict(result)
        except (
            GenerationError,
            TimeoutError,
            httpx.HTTPError,
            json.JSONDecodeError,
            KeyError,
            TypeError,
            ValueError,
        ) as e:
            logger.warning(f"Nutrition estimate failed for '{canonical_english}': {e}")
            return None

    async def per_100g_or_fallback(
        self, canonical_english: str, display_name: str | None = None
    ) -> NutritionData:
        """Estimated per-100g values, or the static table when estimation found nothing."""
        estimate = await self.estimate(canonical_english)
        if estimate.source != "none":
            return estimate.per_100g
        return fallback_nutrition(canonical_english or display_name or "")

    async def compute_recipe_nutrition(
        self, ingredients: list[dict[str, Any]], servings: int | None = None
    ) -> RecipeNutrition:
        """Compute total and per-serving nutrition for recipe ingredients.

        Args:
            ingredients: dicts with canonical_name, amount, unit and optional display_name
            servings: Number of servings (defaults to 1)
        """
        servings = max(1, servings or 1)
        total = NutritionData()

        for ingredient in ingredients:
            grams = to_grams(ingredient.get("amount"), ingredient.get("unit"))
            if grams <= 0:
                continue
            per_100g = await self.per_100g_or_fallback(
                ingredient.get("canonical_name") or "",
                ingredient.get("display_name"),
            )
            total = total.plus(per_100g.scaled(grams / 100))

        return RecipeNutrition(
            total=total.rounded(),
            per_serving=total.scaled(1 / servings).rounded(),
            servings=servings,
        )

    async def compute_per_serving(
        self, ingredients: list[dict[str, Any]], servings: int | None = None
    ) -> NutritionData:
        """Per-serving nutrition, rounded to one decimal."""
        result = await self.compute_recipe_nutrition(ingredients, servings)
        return result.per_serving
