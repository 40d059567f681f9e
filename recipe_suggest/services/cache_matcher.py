"""Exact and partial matching of requests against cached suggestions."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from recipe_suggest.models.enums import MealType
from recipe_suggest.models.mixins import utcnow
from recipe_suggest.services.cache_key import QuantizedSettings, generate_key
from recipe_suggest.services.normalizer import normalize
from recipe_suggest.services.suggestion_cache import SuggestionCacheStore

logger = logging.getLogger(__name__)

BASE_SCORE = 100
EXACT_FIELD_BONUS = 10


@dataclass
class MatchCriteria:
    """What a request asks of the cache.

    Disliked ingredients and cooking methods are not part of the key; they
    are applied as filters on the candidates.
    """

    ingredients: list[str]
    settings: QuantizedSettings
    disliked_ingredients: list[str] = field(default_factory=list)
    preferred_cooking_methods: list[str] = field(default_factory=list)
    skill_level: str | None = None

    @property
    def cache_key(self) -> str:
        return generate_key(self.ingredients, self.settings)

    def to_request_settings(self) -> dict[str, Any]:
        """Settings as persisted next to cached suggestions."""
        return {
            **self.settings.to_dict(),
            "disliked_ingredients": normalized_set(self.disliked_ingredients),
            "preferred_cooking_methods": method_set(self.preferred_cooking_methods),
            "skill_level": self.skill_level,
        }


@dataclass
class CacheMatch:
    """A cache hit."""

    match_type: str  # exact | partial
    cache_key: str
    score: int
    suggestions: list[dict[str, Any]]


def normalized_set(values: list[str] | None) -> list[str]:
    return sorted({normalize(v) for v in values or [] if normalize(v)})


def method_set(values: list[str] | None) -> list[str]:
    return sorted({m for m in normalized_set(values) if m != "none"})


def is_compatible(candidate: dict[str, Any], criteria: MatchCriteria) -> bool:
    """Apply the strict settings rules to a candidate's stored settings."""
    settings = criteria.settings

    if candidate.get("servings") != settings.servings:
        return False

    if settings.meal_type != MealType.NONE and candidate.get("meal_type") != settings.meal_type:
        return False

    if (candidate.get("max_cooking_time") or 0) < settings.max_cooking_time:
        return False

    wanted_disliked = set(normalized_set(criteria.disliked_ingredients))
    candidate_disliked = set(candidate.get("disliked_ingredients") or [])
    if not wanted_disliked:
        if candidate_disliked:
            return False
    elif not candidate_disliked >= wanted_disliked:
        return False

    wanted_methods = set(method_set(criteria.preferred_cooking_methods))
    candidate_methods = set(candidate.get("preferred_cooking_methods") or [])
    if wanted_methods and not candidate_methods >= wanted_methods:
        return False

    return True


def score_candidate(candidate: dict[str, Any], criteria: MatchCriteria) -> int:
    """Base score plus a bonus for each setting that matches exactly."""
    score = BASE_SCORE
    if candidate.get("max_cooking_time") == criteria.settings.max_cooking_time:
        score += EXACT_FIELD_BONUS
    if candidate.get("meal_type") == criteria.settings.meal_type:
        score += EXACT_FIELD_BONUS
    if set(candidate.get("preferred_cooking_methods") or []) == set(
        method_set(criteria.preferred_cooking_methods)
    ):
        score += EXACT_FIELD_BONUS
    return score


def filter_by_time(
    suggestions: list[dict[str, Any]], max_cooking_time: int
) -> list[dict[str, Any]]:
    """Keep suggestions that fit the time ceiling."""
    return [
        s for s in suggestions if (s.get("cooking_time_minutes") or 0) <= max_cooking_time
    ]


class CacheMatcher:
    """Find cached suggestions for a request, exact key first."""

    def __init__(self, store: SuggestionCacheStore):
        self.store = store

    def find(self, criteria: MatchCriteria, now: datetime | None = None) -> CacheMatch | None:
        now = now or utcnow()
        return self.find_exact(criteria, now) or self.find_partial(criteria, now)

    def find_exact(self, criteria: MatchCriteria, now: datetime | None = None) -> CacheMatch | None:
        """Look up the request's own key, then apply the post-filters."""
        key = criteria.cache_key
        entry = self.store.get(key, now=now)
        if entry is None:
            return None

        if not is_compatible(entry.request_settings or {}, criteria):
            logger.info(f"Exact cache entry '{key}' rejected by preference filters")
            return None
        suggestions = filter_by_time(entry.suggestions or [], criteria.settings.max_cooking_time)
        if not suggestions:
            return None

        return CacheMatch(
            match_type="exact",
            cache_key=key,
            score=score_candidate(entry.request_settings or {}, criteria),
            suggestions=suggestions,
        )

    def find_partial(
        self, criteria: MatchCriteria, now: datetime | None = None
    ) -> CacheMatch | None:
        """Find entries containing every requested ingredient and rank them.

        Candidates are visited in first-seen order, so ties go to the
        earliest-indexed entry.
        """
        ingredients = sorted(set(criteria.ingredients))
        if not ingredients:
            return None

        candidates: list[str] | None = None
        for ingredient in ingredients:
            keys = self.store.keys_for_ingredient(ingredient, now=now)
            if candidates is None:
                candidates = list(dict.fromkeys(keys))
            else:
                present = set(keys)
                candidates = [key for key in candidates if key in present]
            if not candidates:
                return None

        best: CacheMatch | None = None
        for key in candidates or []:
            entry = self.store.get(key, now=now)
            if entry is None:
                continue
            candidate_settings = entry.request_settings or {}
            if not is_compatible(candidate_settings, criteria):
                continue
            suggestions = filter_by_time(
                entry.suggestions or [], criteria.settings.max_cooking_time
            )
            if not suggestions:
                continue
            score = score_candidate(candidate_settings, criteria)
            if best is None or score > best.score:
                best = CacheMatch("partial", key, score, suggestions)

        if best:
            logger.info(f"Partial cache match '{best.cache_key}' (score {best.score})")
        return best
