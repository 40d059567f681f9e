"""Background generation of suggestions on cache misses."""

import asyncio
import json
import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from recipe_suggest.config import get_settings
from recipe_suggest.exceptions import (
    GenerationError,
    GenerationParseError,
    GenerationTimeout,
    StoreUnavailable,
)
from recipe_suggest.models.enums import JobState
from recipe_suggest.models.generation_job import GenerationJob
from recipe_suggest.schemas.generation import CompatibilityAnalysis, GeneratedRecipe
from recipe_suggest.services.cache_key import QuantizedSettings, generate_key
from recipe_suggest.services.dictionary_store import DictionaryStore
from recipe_suggest.services.job_store import JobStore
from recipe_suggest.services.learned_cache import LearnedCacheStore
from recipe_suggest.services.llm import LLMService, strip_code_fences
from recipe_suggest.services.llm_prompts import GENERATION_SYSTEM_PROMPT, get_generation_prompt
from recipe_suggest.services.normalizer import normalize, slugify_english
from recipe_suggest.services.nutrition_service import NutritionService
from recipe_suggest.services.suggestion_cache import SuggestionCacheStore

logger = logging.getLogger(__name__)

WARNING_SEPARATOR = " | "


def _extract_json(text: str, opener: str, closer: str) -> Any | None:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None


def _valid_recipes(items: list[Any]) -> list[GeneratedRecipe]:
    recipes = []
    for item in items:
        try:
            recipes.append(GeneratedRecipe.model_validate(item))
        except PydanticValidationError as e:
            logger.warning(f"Skipping malformed recipe in LLM response: {e.error_count()} error(s)")
    return recipes


def parse_generation_response(
    text: str,
) -> tuple[CompatibilityAnalysis | None, list[GeneratedRecipe]]:
    """Parse an LLM answer into an optional analysis and its recipes.

    The ``{"analysis": ..., "recipes": [...]}`` envelope is preferred; a bare
    recipe list is accepted as a fallback.

    Raises:
        GenerationParseError: if neither form yields a usable recipe
    """
    cleaned = strip_code_fences(text)

    envelope = _extract_json(cleaned, "{", "}")
    if isinstance(envelope, dict) and isinstance(envelope.get("recipes"), list):
        recipes = _valid_recipes(envelope["recipes"])
        if recipes:
            analysis = None
            if isinstance(envelope.get("analysis"), dict):
                try:
                    analysis = CompatibilityAnalysis.model_validate(envelope["analysis"])
                except PydanticValidationError:
                    logger.warning("Ignoring malformed compatibility analysis")
            return analysis, recipes

    bare = _extract_json(cleaned, "[", "]")
    if isinstance(bare, list):
        recipes = _valid_recipes(bare)
        if recipes:
            logger.info(f"Parsed bare recipe list ({len(recipes)} recipes, no analysis)")
            return None, recipes

    logger.error(f"No usable recipe in LLM response: {cleaned[:500]}")
    raise GenerationParseError("No valid recipe JSON found in LLM response")


def build_warning(
    recipe: GeneratedRecipe, max_cooking_time: int, analysis: CompatibilityAnalysis | None
) -> str | None:
    """Describe non-fatal discrepancies between the request and the result."""
    warnings = []
    if recipe.cooking_time > max_cooking_time:
        warnings.append(
            f"Recipe takes {recipe.cooking_time} minutes, over the {max_cooking_time} minute "
            f"limit. Increase the time limit to {recipe.cooking_time} minutes to see it."
        )
    if analysis and analysis.incompatible_ingredients:
        message = (
            "Incompatible ingredients were left out: "
            f"{', '.join(analysis.incompatible_ingredients)}."
        )
        if analysis.compatibility_note:
            message += f" {analysis.compatibility_note}"
        if analysis.separate_search_suggestion:
            message += f" Suggestion: {analysis.separate_search_suggestion}"
        warnings.append(message)
    return WARNING_SEPARATOR.join(warnings) if warnings else None


class GenerationWorker:
    """Turn a queued job message into a cached suggestion."""

    def __init__(
        self,
        db: Session,
        llm_service: LLMService | None = None,
        nutrition_service: NutritionService | None = None,
    ):
        self.db = db
        self.settings = get_settings()
        self.llm_service = llm_service or LLMService()
        self.nutrition_service = nutrition_service or NutritionService(db, self.llm_service)
        self.jobs = JobStore(db)
        self.cache = SuggestionCacheStore(db)
        self.dictionary = DictionaryStore(db)
        self.learned_cache = LearnedCacheStore(db)

    async def process(self, message: dict[str, Any]) -> dict[str, Any]:
        """Process one job message.

        Generation errors fail the job. Store errors propagate so the task
        can be redelivered; any other error fails the job and propagates.
        """
        job_id = message["job_id"]
        job = self.jobs.load(job_id)
        if job is None:
            logger.warning(f"Job {job_id} not found, skipping")
            return {"success": False, "job_id": job_id, "skipped": "not_found"}
        if JobState(job.status).is_terminal:
            logger.info(f"Job {job_id} already {job.status}, skipping redelivery")
            return {"success": True, "job_id": job_id, "skipped": job.status}

        self.jobs.mark_processing(job)
        logger.info(f"Processing job {job_id} for ingredients {message['ingredients']}")

        try:
            return await self._generate(job, message)
        except GenerationError as e:
            self.jobs.fail(job, str(e))
            return {"success": False, "job_id": job_id, "error": str(e)}
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.exception(f"Job {job_id} crashed")
            self.db.rollback()
            self.jobs.fail(job, f"Unexpected error: {type(e).__name__}")
            raise

    async def _generate(self, job: GenerationJob, message: dict[str, Any]) -> dict[str, Any]:
        request_settings = message["settings"]
        settings = QuantizedSettings(
            servings=request_settings["servings"],
            meal_type=request_settings["meal_type"],
            max_cooking_time=request_settings["max_cooking_time"],
        )

        translations = message.get("translations") or []
        budget = self.settings.generation_time_budget_seconds
        deadline = time.monotonic() + budget
        self.nutrition_service.deadline = deadline

        prompt = get_generation_prompt(
            ingredients=message["ingredients"],
            servings=settings.servings,
            meal_type=settings.meal_type,
            max_cooking_time=settings.max_cooking_time,
            disliked_ingredients=request_settings.get("disliked_ingredients"),
            preferred_cooking_methods=request_settings.get("preferred_cooking_methods"),
            skill_level=request_settings.get("skill_level"),
            display_names={t["canonical"]: t["original"] for t in translations},
        )
        try:
            raw = await asyncio.wait_for(
                self.llm_service.generate(
                    prompt=prompt,
                    system_prompt=GENERATION_SYSTEM_PROMPT,
                    temperature=0.7,
                    max_tokens=4096,
                ),
                timeout=budget,
            )
        except TimeoutError as e:
            raise GenerationTimeout(f"Generation exceeded its {budget:g}s budget") from e
        except httpx.HTTPError as e:
            raise GenerationError(f"LLM request failed: {e}") from e

        analysis, recipes = parse_generation_response(raw)
        recipe = min(recipes, key=lambda r: r.cooking_time)
        if analysis:
            logger.info(
                f"Job {job.job_id} compatibility: compatible={analysis.compatible_ingredients} "
                f"incompatible={analysis.incompatible_ingredients}"
            )

        aliases = {t["normalized"]: t["canonical"] for t in translations}
        suggestion = await self._build_suggestion(
            recipe, settings.servings, message["ingredients"], aliases
        )
        await self._learn_ingredients(suggestion, message["ingredients"])

        used = sorted({i["canonical_name"] for i in suggestion["ingredients"]})
        derived_key = generate_key(used, settings)
        self.cache.put(derived_key, [suggestion], request_settings, used)
        logger.info(
            f"Job {job.job_id}: request key '{message['cache_key']}', "
            f"stored under '{derived_key}'"
        )

        warning = build_warning(recipe, settings.max_cooking_time, analysis)
        notes = analysis.model_dump() if analysis else None
        self.jobs.complete(job, [suggestion], warning=warning, compatibility_notes=notes)
        return {"success": True, "job_id": job.job_id, "cache_key": derived_key}

    async def _build_suggestion(
        self,
        recipe: GeneratedRecipe,
        servings: int,
        requested: list[str],
        aliases: dict[str, str],
    ) -> dict[str, Any]:
        """Convert the recipe, keeping the request's canonical names.

        A recipe ingredient whose Vietnamese name matches a requested
        ingredient takes that ingredient's canonical name, whatever English
        name the model chose.
        """
        requested_names = set(requested)
        ingredients = []
        for item in recipe.ingredients:
            canonical = slugify_english(item.name)
            if canonical not in requested_names and item.vietnamese_name:
                canonical = aliases.get(normalize(item.vietnamese_name), canonical)
            if not canonical:
                continue
            ingredients.append(
                {
                    "canonical_name": canonical,
                    "display_name": item.vietnamese_name,
                    "amount": item.amount,
                    "unit": item.unit,
                    "importance": item.importance,
                }
            )
        if not ingredients:
            raise GenerationParseError("Generated recipe has no usable ingredients")

        recipe_servings = recipe.servings or servings
        nutrition = await self.nutrition_service.compute_per_serving(ingredients, recipe_servings)

        return {
            "name": recipe.name,
            "description": recipe.description,
            "ingredients": ingredients,
            "used_ingredients": [slugify_english(name) for name in recipe.used_ingredients],
            "steps": [
                {
                    "step_number": step.step_number,
                    "instruction": step.instruction,
                    "duration_minutes": step.duration,
                }
                for step in recipe.steps
            ],
            "cooking_time_minutes": recipe.cooking_time,
            "difficulty": recipe.difficulty,
            "servings": recipe_servings,
            "nutrition_per_serving": nutrition.to_dict(),
        }

    async def _learn_ingredients(self, suggestion: dict[str, Any], requested: list[str]) -> int:
        """Seed the learned cache with new ingredients the recipe introduced."""
        requested_names = set(requested)
        learned = 0
        for ingredient in suggestion["ingredients"]:
            canonical = ingredient["canonical_name"]
            display_name = ingredient.get("display_name")
            if not display_name or canonical in requested_names:
                continue
            normalized = normalize(display_name)
            if not normalized:
                continue
            if self.dictionary.get_by_english(canonical) or self.learned_cache.get_by_english(
                canonical
            ):
                continue
            if self.dictionary.get(normalized):
                continue

            estimate = await self.nutrition_service.estimate(canonical)
            nutrition = estimate.per_100g.to_dict() if estimate.source != "none" else None
            if self.learned_cache.create_if_absent(
                normalized=normalized,
                source_text=display_name,
                canonical_english=canonical,
                category="other",
                nutrition_per_100g=nutrition,
            ):
                learned += 1
        if learned:
            logger.info(f"Learned {learned} new ingredient translation(s) from generated recipe")
        return learned
