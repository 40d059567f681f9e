"""Tests for nutrition estimation, unit conversion and the fallback table."""

import json
import time
from unittest.mock import AsyncMock

import pytest

from recipe_suggest.exceptions import GenerationTimeout
from recipe_suggest.services.learned_cache import LearnedCacheStore
from recipe_suggest.services.nutrition_service import (
    FALLBACK_NUTRITION,
    NutritionService,
    fallback_nutrition,
    parse_amount,
    to_grams,
)


@pytest.fixture
def llm():
    llm = AsyncMock()
    llm.generate_json.return_value = {
        "calories": 100,
        "protein": 10,
        "carbs": 5,
        "fat": 2,
        "fiber": 1,
    }
    return llm


@pytest.mark.parametrize(
    "amount,expected",
    [("2", 2.0), ("1.5", 1.5), ("1,5", 1.5), ("1/2", 0.5), ("1 1/2", 1.5), (3, 3.0), ("2-3", 2.0)],
)
def test_parse_amount(amount, expected):
    """Test numbers, decimals and fractions parse."""
    assert parse_amount(amount) == pytest.approx(expected)


@pytest.mark.parametrize("amount", ["some", "", None, "1/0", True])
def test_parse_amount_unparseable(amount):
    """Test unparseable amounts give None."""
    assert parse_amount(amount) is None


@pytest.mark.parametrize(
    "amount,unit,grams",
    [
        ("500", "g", 500),
        ("1", "kg", 1000),
        ("2", "tbsp", 30),
        ("1", "muỗng cà phê", 5),
        ("3", "tép", 15),
        ("1", "bó", 50),
        ("2", "Quả", 100),
        ("1/2", "cup", 120),
        ("4", "handful", 4),
        ("abc", "g", 0),
    ],
)
def test_to_grams(amount, unit, grams):
    """Test unit conversion, including Vietnamese units and unknown units."""
    assert to_grams(amount, unit) == pytest.approx(grams)


@pytest.mark.parametrize(
    "name,key",
    [
        ("chicken", "chicken"),
        ("chicken-breast", "chicken"),
        ("Thịt gà", "chicken"),
        ("thit-heo", "pork"),
        ("fish-sauce", "fish-sauce"),
        ("Nước mắm", "fish-sauce"),
        ("Cà chua", "tomato"),
        ("ca-rot", "carrot"),
        ("ca-basa", "fish"),
        ("dau-an", "oil"),
        ("dragon-fruit", "default"),
    ],
)
def test_fallback_nutrition(name, key):
    """Test fallback lookup by exact key, phrase, then word."""
    assert fallback_nutrition(name) == FALLBACK_NUTRITION[key]


@pytest.mark.asyncio
async def test_estimate_prefers_dictionary(db, seeded_dictionary, llm):
    """Test dictionary nutrition is used before the LLM."""
    service = NutritionService(db, llm)

    estimate = await service.estimate("chicken")

    assert estimate.source == "dictionary"
    assert estimate.per_100g.calories == 165
    llm.generate_json.assert_not_called()


@pytest.mark.asyncio
async def test_estimate_uses_learned_cache(db, llm):
    """Test learned cache nutrition is used when the dictionary has none."""
    LearnedCacheStore(db).create_if_absent(
        "la-lot", "Lá lốt", "betel-leaf", nutrition_per_100g={"calories": 39, "protein": 4.3}
    )
    service = NutritionService(db, llm)

    estimate = await service.estimate("betel-leaf")

    assert estimate.source == "cache"
    assert estimate.per_100g.calories == 39
    assert estimate.per_100g.fat == 0


@pytest.mark.asyncio
async def test_estimate_falls_back_to_llm_and_memoizes(db, llm):
    """Test the LLM is asked once per ingredient per service instance."""
    service = NutritionService(db, llm)

    first = await service.estimate("dragon-fruit")
    second = await service.estimate("dragon-fruit")

    assert first.source == "ai"
    assert second.per_100g.calories == 100
    llm.generate_json.assert_called_once()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [
        GenerationTimeout("slow"),
        json.JSONDecodeError("bad", "", 0),
    ],
)
async def test_estimate_never_raises(db, llm, failure):
    """Test backend failures give zero nutrition with source none."""
    llm.generate_json.side_effect = failure
    service = NutritionService(db, llm)

    estimate = await service.estimate("dragon-fruit")

    assert estimate.source == "none"
    assert estimate.per_100g.calories == 0


@pytest.mark.asyncio
async def test_estimate_rejects_non_numeric_values(db, llm):
    """Test malformed values count as a failed estimate."""
    llm.generate_json.return_value = {"calories": "lots"}

    estimate = await NutritionService(db, llm).estimate("dragon-fruit")
    assert estimate.source == "none"


@pytest.mark.asyncio
async def test_compute_per_serving(db, seeded_dictionary, llm):
    """Test per-serving nutrition sums scaled ingredients and divides by servings."""
    llm.generate_json.side_effect = GenerationTimeout("slow")
    service = NutritionService(db, llm)

    result = await service.compute_recipe_nutrition(
        [
            {"canonical_name": "chicken", "amount": "500", "unit": "g"},
            # Not in any store and the LLM fails: static table (garlic)
            {"canonical_name": "black-garlic", "amount": "2", "unit": "tép"},
            {"canonical_name": "salt", "amount": "a pinch", "unit": "g"},
        ],
        servings=2,
    )

    # chicken 165*5 = 825; garlic 149*0.1 = 14.9
    assert result.total.calories == pytest.approx(839.9, abs=0.1)
    assert result.per_serving.calories == pytest.approx(419.95, abs=0.1)
    assert result.per_serving.protein == pytest.approx((31 * 5 + 6.4 * 0.1) / 2, abs=0.05)
    assert result.servings == 2


@pytest.mark.asyncio
async def test_compute_per_serving_empty(db, llm):
    """Test no ingredients give zero nutrition."""
    per_serving = await NutritionService(db, llm).compute_per_serving([], 4)
    assert per_serving.calories == 0


@pytest.mark.asyncio
async def test_estimate_skips_llm_after_deadline(db, llm):
    """Test the LLM tier is skipped once the time budget is spent."""
    service = NutritionService(db, llm, deadline=time.monotonic() - 1)

    estimate = await service.estimate("jackfruit")

    assert estimate.source == "none"
    llm.generate_json.assert_not_called()
