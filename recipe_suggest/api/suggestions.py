"""Suggestion API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from recipe_suggest.api.dependencies import get_current_user_id, get_suggestion_service
from recipe_suggest.schemas.suggestion import (
    JobStatusResponse,
    RateLimitInfo,
    SuggestionRequest,
    SuggestionResponse,
    TranslationInfo,
    UsageResponse,
)
from recipe_suggest.services.suggestion_service import (
    ESTIMATED_GENERATION_SECONDS,
    SuggestionService,
)

router = APIRouter(prefix="/api/v1/suggestions", tags=["suggestions"])


@router.post(
    "",
    response_model=SuggestionResponse,
    responses={202: {"model": SuggestionResponse, "description": "Generation queued"}},
)
async def create_suggestion(
    request: SuggestionRequest,
    response: Response,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[SuggestionService, Depends(get_suggestion_service)],
):
    """Suggest recipes for the given ingredients.

    Returns 200 with cached suggestions on a cache hit, or 202 with a job id
    to poll when a new suggestion has to be generated.
    """
    outcome = await service.suggest(
        user_id=user_id,
        ingredients=request.ingredients,
        servings=request.servings,
        meal_type=request.meal_type.value,
        max_cooking_time=request.max_cooking_time,
        disliked_ingredients=request.disliked_ingredients,
        preferred_cooking_methods=request.preferred_cooking_methods,
        skill_level=request.skill_level,
    )
    response.headers.update(outcome.rate_limit.headers())

    fields = {
        "status": outcome.status,
        "cache_hit": outcome.cache_hit,
        "translations": [
            TranslationInfo(
                original=t.original,
                canonical_english=t.canonical_english,
                source=t.source.value,
            )
            for t in outcome.translations
        ],
        "failed_ingredients": outcome.failed_ingredients,
        "rate_limit": RateLimitInfo(**outcome.rate_limit.to_dict()),
    }
    if outcome.match is not None:
        return SuggestionResponse(
            **fields,
            match_type=outcome.match.match_type,
            cache_key=outcome.match.cache_key,
            match_score=outcome.match.score,
            suggestions=outcome.match.suggestions,
        )

    response.status_code = status.HTTP_202_ACCEPTED
    return SuggestionResponse(
        **fields,
        job_id=outcome.job.job_id,
        estimated_seconds=ESTIMATED_GENERATION_SECONDS,
    )


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
def get_job_status(
    job_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[SuggestionService, Depends(get_suggestion_service)],
):
    """Poll a generation job."""
    return service.get_job(job_id, user_id)


@router.get("/usage", response_model=UsageResponse)
def get_usage(
    response: Response,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[SuggestionService, Depends(get_suggestion_service)],
):
    """Get today's suggestion quota without using it."""
    quota = service.usage(user_id)
    response.headers.update(quota.headers())
    return UsageResponse(rate_limit=RateLimitInfo(**quota.to_dict()))
