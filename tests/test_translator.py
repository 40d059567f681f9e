"""Tests for the ingredient translator resolver chain."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from recipe_suggest.exceptions import GenerationTimeout, UnknownIngredient
from recipe_suggest.models.enums import TranslationSource
from recipe_suggest.services.learned_cache import LearnedCacheStore
from recipe_suggest.services.translator import Translator

NUTRITION = {"calories": 39, "protein": 4.3, "carbs": 6.5, "fat": 0.6, "fiber": 2}


@pytest.fixture
def llm():
    llm = AsyncMock()
    llm.generate.return_value = json.dumps(
        {"english": "Betel Leaf", "general": "leaf", "category": "vegetable"}
    )
    llm.generate_json.return_value = NUTRITION
    return llm


@pytest.fixture
def recorder():
    return MagicMock()


@pytest.fixture
def translator(db, llm, recorder):
    return Translator(db, llm_service=llm, usage_recorder=recorder)


@pytest.mark.asyncio
async def test_dictionary_hit(seeded_dictionary, translator, llm, recorder):
    """Test dictionary entries resolve without touching the LLM or usage counts."""
    translation = await translator.translate("Thịt Gà")

    assert translation.canonical_english == "chicken"
    assert translation.source == TranslationSource.DICTIONARY
    assert translation.normalized == "thit-ga"
    llm.generate.assert_not_called()
    recorder.assert_not_called()


@pytest.mark.asyncio
async def test_ai_translation_seeds_learned_cache(db, translator, llm):
    """Test an unknown ingredient is translated by the LLM and cached with nutrition."""
    translation = await translator.translate("Lá lốt")

    assert translation.source == TranslationSource.AI
    assert translation.canonical_english == "betel-leaf"
    assert translation.general_form == "leaf"
    assert translation.category == "vegetable"

    entry = LearnedCacheStore(db).get("la-lot")
    assert entry.canonical_english == "betel-leaf"
    assert entry.usage_count == 1
    assert entry.nutrition_per_100g["calories"] == 39


@pytest.mark.asyncio
async def test_learned_cache_hit_schedules_usage_bump(db, translator, llm, recorder):
    """Test the second lookup hits the learned cache and records usage."""
    await translator.translate("Lá lốt")
    llm.generate.reset_mock()

    translation = await translator.translate("la lot")

    assert translation.source == TranslationSource.CACHE
    assert translation.canonical_english == "betel-leaf"
    llm.generate.assert_not_called()
    recorder.assert_called_once_with("la-lot")


@pytest.mark.asyncio
async def test_usage_bump_failure_does_not_fail_translation(db, translator, llm, recorder):
    """Test a broker failure while scheduling the bump is tolerated."""
    await translator.translate("Lá lốt")
    recorder.side_effect = ConnectionError("broker down")

    translation = await translator.translate("Lá lốt")
    assert translation.source == TranslationSource.CACHE


@pytest.mark.asyncio
async def test_invalid_marker_raises_unknown(db, translator, llm):
    """Test the LLM rejecting an ingredient raises and caches nothing."""
    llm.generate.return_value = "INVALID"

    with pytest.raises(UnknownIngredient):
        await translator.translate("asdfgh")

    assert LearnedCacheStore(db).get("asdfgh") is None


@pytest.mark.asyncio
async def test_plain_slug_answer(db, translator, llm):
    """Test a bare English answer is accepted as the canonical name."""
    llm.generate.return_value = "Perilla"

    translation = await translator.translate("Tía tô")
    assert translation.canonical_english == "perilla"


@pytest.mark.asyncio
async def test_nutrition_failure_still_translates(db, translator, llm):
    """Test nutrition errors degrade to no stored nutrition."""
    llm.generate_json.side_effect = json.JSONDecodeError("bad", "", 0)

    translation = await translator.translate("Lá lốt")

    assert translation.canonical_english == "betel-leaf"
    assert LearnedCacheStore(db).get("la-lot").nutrition_per_100g is None


@pytest.mark.asyncio
async def test_lost_creation_race_keeps_local_translation(db, translator, llm):
    """Test losing the create race returns the locally computed translation."""
    LearnedCacheStore(db).create_if_absent("la-lot", "Lá lốt", "piper-lolot")
    db.expire_all()
    # Make the cache tier miss so the LLM tier runs and collides on insert
    translator.resolvers[1].store.get = MagicMock(return_value=None)

    translation = await translator.translate("Lá lốt")

    assert translation.canonical_english == "betel-leaf"
    assert translation.source == TranslationSource.AI
    assert LearnedCacheStore(db).get("la-lot").canonical_english == "piper-lolot"


@pytest.mark.asyncio
async def test_translate_many_collects_failures(seeded_dictionary, translator, llm):
    """Test unknown ingredients are collected without aborting the others."""
    llm.generate.return_value = "INVALID"

    batch = await translator.translate_many(["Thịt gà", "xyzzy", "Hành lá"])

    assert batch.canonical_names == ["chicken", "scallion"]
    assert batch.failed == ["xyzzy"]


@pytest.mark.asyncio
async def test_translate_many_collects_backend_errors(translator, llm):
    """Test LLM timeouts count as failed ingredients."""
    llm.generate.side_effect = GenerationTimeout("slow")

    batch = await translator.translate_many(["Lá lốt"])

    assert batch.translations == []
    assert batch.failed == ["Lá lốt"]


@pytest.mark.asyncio
async def test_empty_text_is_unknown(translator):
    """Test text without letters is rejected before any lookup."""
    with pytest.raises(UnknownIngredient):
        await translator.translate("???")
