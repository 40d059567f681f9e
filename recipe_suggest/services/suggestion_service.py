"""Suggestion request orchestration: validate, translate, match, charge, enqueue."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from recipe_suggest.exceptions import RateLimitExceeded, ValidationError
from recipe_suggest.models.enums import JobState
from recipe_suggest.models.generation_job import GenerationJob
from recipe_suggest.services.cache_key import quantize
from recipe_suggest.services.cache_matcher import CacheMatch, CacheMatcher, MatchCriteria
from recipe_suggest.services.job_store import JobStore
from recipe_suggest.services.normalizer import split_ingredients
from recipe_suggest.services.rate_limiter import RateLimiter, RateLimitStatus
from recipe_suggest.services.suggestion_cache import SuggestionCacheStore
from recipe_suggest.services.translator import Translation, Translator

logger = logging.getLogger(__name__)

ESTIMATED_GENERATION_SECONDS = 30

JobEnqueuer = Callable[[dict[str, Any]], object]


@dataclass
class SuggestionOutcome:
    """Result of a suggestion request: a cache hit or a queued job."""

    status: str  # completed | pending
    rate_limit: RateLimitStatus
    match: CacheMatch | None = None
    job: GenerationJob | None = None
    translations: list[Translation] = field(default_factory=list)
    failed_ingredients: list[str] = field(default_factory=list)

    @property
    def cache_hit(self) -> bool:
        return self.match is not None


def _enqueue_generation(message: dict[str, Any]) -> None:
    from recipe_suggest.tasks.generation import generate_suggestion

    generate_suggestion.delay(message)


class SuggestionService:
    """Serve suggestions from the cache, or queue a generation job on a miss."""

    def __init__(
        self,
        db: Session,
        translator: Translator | None = None,
        enqueue: JobEnqueuer | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.db = db
        self.translator = translator or Translator(db)
        self.enqueue = enqueue or _enqueue_generation
        self.rate_limiter = rate_limiter or RateLimiter(db)
        self.matcher = CacheMatcher(SuggestionCacheStore(db))
        self.jobs = JobStore(db)

    async def suggest(
        self,
        user_id: str,
        ingredients: list[str],
        servings: int = 2,
        meal_type: str | None = None,
        max_cooking_time: int = 30,
        disliked_ingredients: list[str] | None = None,
        preferred_cooking_methods: list[str] | None = None,
        skill_level: str | None = None,
    ) -> SuggestionOutcome:
        """Handle one suggestion request.

        Quota is checked before any LLM translation is spent, and charged
        only once the request is known to be valid.

        Raises:
            ValidationError: if no ingredient is given or none can be translated
            RateLimitExceeded: if the user's daily quota is used up
        """
        texts = split_ingredients(ingredients)
        quota = self.rate_limiter.peek(user_id)
        if not texts:
            raise ValidationError("At least one ingredient is required", rate_limit=quota)
        if not quota.allowed:
            raise RateLimitExceeded(quota)

        batch = await self.translator.translate_many(texts)
        if not batch.translations:
            raise ValidationError(
                "None of the ingredients could be recognized",
                failed_ingredients=batch.failed,
                rate_limit=quota,
            )
        if batch.failed:
            logger.info(f"Dropping unrecognized ingredients: {batch.failed}")

        criteria = MatchCriteria(
            ingredients=sorted(set(batch.canonical_names)),
            settings=quantize(servings, meal_type, max_cooking_time),
            disliked_ingredients=disliked_ingredients or [],
            preferred_cooking_methods=preferred_cooking_methods or [],
            skill_level=skill_level,
        )
        match = self.matcher.find(criteria)

        quota = self.rate_limiter.check_and_reserve(user_id)
        if not quota.allowed:
            raise RateLimitExceeded(quota)

        if match is not None:
            logger.info(f"Cache hit ({match.match_type}) for user {user_id}: {match.cache_key}")
            return SuggestionOutcome(
                status=JobState.COMPLETED.value,
                rate_limit=quota,
                match=match,
                translations=batch.translations,
                failed_ingredients=batch.failed,
            )

        job = self.jobs.create(user_id, criteria.cache_key)
        message = {
            "job_id": job.job_id,
            "user_id": user_id,
            "ingredients": criteria.ingredients,
            "translations": [
                {
                    "original": t.original,
                    "normalized": t.normalized,
                    "canonical": t.canonical_english,
                }
                for t in batch.translations
            ],
            "cache_key": criteria.cache_key,
            "settings": criteria.to_request_settings(),
        }
        try:
            self.enqueue(message)
        except Exception as e:
            self.jobs.fail(job, f"Could not queue generation: {e}")
            raise
        logger.info(f"Cache miss for user {user_id}, queued job {job.job_id}")

        return SuggestionOutcome(
            status=JobState.PENDING.value,
            rate_limit=quota,
            job=job,
            translations=batch.translations,
            failed_ingredients=batch.failed,
        )

    def get_job(self, job_id: str, user_id: str) -> GenerationJob:
        """Poll a job owned by the user."""
        return self.jobs.get_for_user(job_id, user_id)

    def usage(self, user_id: str) -> RateLimitStatus:
        """Current quota without charging it."""
        return self.rate_limiter.peek(user_id)
