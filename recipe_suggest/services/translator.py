"""Ingredient translation through dictionary, learned cache and LLM tiers."""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
from sqlalchemy.orm import Session

from recipe_suggest.config import get_settings
from recipe_suggest.exceptions import GenerationError, UnknownIngredient
from recipe_suggest.models.enums import TranslationSource
from recipe_suggest.services.dictionary_store import DictionaryStore
from recipe_suggest.services.learned_cache import LearnedCacheStore
from recipe_suggest.services.llm import LLMService, strip_code_fences
from recipe_suggest.services.llm_prompts import (
    INVALID_MARKER,
    TRANSLATION_SYSTEM_PROMPT,
    get_translation_prompt,
)
from recipe_suggest.services.normalizer import normalize, slugify_english
from recipe_suggest.services.nutrition_service import NutritionService

logger = logging.getLogger(__name__)

UsageRecorder = Callable[[str], object]


@dataclass
class Translation:
    """A resolved ingredient."""

    original: str
    normalized: str
    canonical_english: str
    category: str
    source: TranslationSource
    general_form: str | None = None


@dataclass
class TranslationBatch:
    """Result of translating several ingredients independently."""

    translations: list[Translation] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def canonical_names(self) -> list[str]:
        return [t.canonical_english for t in self.translations]


def _enqueue_usage(normalized: str) -> None:
    from recipe_suggest.tasks.translation import record_translation_usage

    record_translation_usage.delay(normalized)


class DictionaryResolver:
    """Permanent dictionary tier. Hits are read-only."""

    def __init__(self, store: DictionaryStore):
        self.store = store

    async def resolve(self, original: str, normalized: str) -> Translation | None:
        entry = self.store.get(normalized)
        if entry is None:
            return None
        return Translation(
            original=original,
            normalized=normalized,
            canonical_english=entry.canonical_english,
            category=entry.category,
            source=TranslationSource.DICTIONARY,
            general_form=entry.general_form,
        )


class LearnedCacheResolver:
    """Learned cache tier. Hits schedule a usage bump without waiting for it."""

    def __init__(self, store: LearnedCacheStore, usage_recorder: UsageRecorder):
        self.store = store
        self.usage_recorder = usage_recorder

    async def resolve(self, original: str, normalized: str) -> Translation | None:
        entry = self.store.get(normalized)
        if entry is None:
            return None
        try:
            self.usage_recorder(normalized)
        except Exception as e:
            # Usage counts only drive promotion; a lost bump is acceptable
            logger.warning(f"Could not schedule usage bump for '{normalized}': {e}")
        return Translation(
            original=original,
            normalized=normalized,
            canonical_english=entry.canonical_english,
            category=entry.category,
            source=TranslationSource.CACHE,
            general_form=entry.general_form,
        )


class GenerativeResolver:
    """LLM tier. Validates the ingredient, then seeds the learned cache."""

    def __init__(
        self,
        llm_service: LLMService,
        store: LearnedCacheStore,
        nutrition_service: NutritionService,
    ):
        self.llm_service = llm_service
        self.store = store
        self.nutrition_service = nutrition_service

    async def resolve(self, original: str, normalized: str) -> Translation:
        """Translate with the LLM.

        Raises:
            UnknownIngredient: if the model rejects the input
            GenerationError: if the model answer is unusable
        """
        try:
            raw = await self.llm_service.generate(
                prompt=get_translation_prompt(original),
                system_prompt=TRANSLATION_SYSTEM_PROMPT,
                temperature=0.1,
                max_tokens=200,
            )
        except httpx.HTTPError as e:
            raise GenerationError(f"Translation backend error for '{original}': {e}") from e

        text = strip_code_fences(raw)
        if text.upper().startswith(INVALID_MARKER):
            logger.info(f"LLM rejected ingredient '{original}'")
            raise UnknownIngredient(original)

        english, general, category = self._parse(text, original)
        if not english:
            raise UnknownIngredient(original)

        estimate = await self.nutrition_service.estimate(english)
        nutrition = estimate.per_100g.to_dict() if estimate.source != "none" else None

        created = self.store.create_if_absent(
            normalized=normalized,
            source_text=original,
            canonical_english=english,
            category=category,
            general_form=general,
            nutrition_per_100g=nutrition,
        )
        if not created:
            logger.info(f"Lost learned cache creation race for '{normalized}'")

        return Translation(
            original=original,
            normalized=normalized,
            canonical_english=english,
            category=category,
            source=TranslationSource.AI,
            general_form=general,
        )

    def _parse(self, text: str, original: str) -> tuple[str, str, str]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            # Some models answer with the bare slug
            english = slugify_english(text.splitlines()[0] if text else "")
            return english, english, "other"

        if not isinstance(data, dict):
            raise GenerationError(f"Unexpected translation payload for '{original}'")
        english = slugify_english(str(data.get("english") or ""))
        general = slugify_english(str(data.get("general") or "")) or english
        category = str(data.get("category") or "other").lower()
        return english, general, category


class Translator:
    """Resolve ingredients to canonical English names, cheapest tier first."""

    def __init__(
        self,
        db: Session,
        llm_service: LLMService | None = None,
        usage_recorder: UsageRecorder | None = None,
        nutrition_service: NutritionService | None = None,
    ):
        self.db = db
        settings = get_settings()
        llm_service = llm_service or LLMService(timeout=settings.translation_timeout_seconds)
        learned_cache = LearnedCacheStore(db)
        self.nutrition_service = nutrition_service or NutritionService(db, llm_service)
        self.resolvers = [
            DictionaryResolver(DictionaryStore(db)),
            LearnedCacheResolver(learned_cache, usage_recorder or _enqueue_usage),
            GenerativeResolver(llm_service, learned_cache, self.nutrition_service),
        ]

    async def translate(self, original_text: str) -> Translation:
        """Translate one ingredient.

        Raises:
            UnknownIngredient: if the text is empty or not an ingredient
            GenerationError: if the LLM tier fails
        """
        original = original_text.strip()
        normalized = normalize(original)
        if not normalized:
            raise UnknownIngredient(original_text)

        for resolver in self.resolvers:
            translation = await resolver.resolve(original, normalized)
            if translation is not None:
                logger.debug(
                    f"Translated '{original}' -> '{translation.canonical_english}' "
                    f"via {translation.source}"
                )
                return translation
        raise UnknownIngredient(original)

    async def translate_many(self, texts: list[str]) -> TranslationBatch:
        """Translate each ingredient independently, collecting failures."""
        batch = TranslationBatch()
        for text in texts:
            try:
                batch.translations.append(await self.translate(text))
            except UnknownIngredient:
                batch.failed.append(text)
            except GenerationError as e:
                logger.warning(f"Translation failed for '{text}': {e}")
                batch.failed.append(text)
        return batch
