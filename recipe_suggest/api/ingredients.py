"""Ingredient lookup and nutrition API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from recipe_suggest.api.dependencies import (
    get_current_user_id,
    get_nutrition_service,
    get_translator,
)
from recipe_suggest.exceptions import ValidationError
from recipe_suggest.schemas.ingredient import (
    IngredientLookupRequest,
    IngredientLookupResponse,
    IngredientLookupResult,
    NutritionRequest,
    NutritionResponse,
)
from recipe_suggest.schemas.suggestion import NutritionValues
from recipe_suggest.services.normalizer import split_ingredients
from recipe_suggest.services.nutrition_service import NutritionService
from recipe_suggest.services.translator import Translator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/ingredients", tags=["ingredients"])


@router.post("/lookup", response_model=IngredientLookupResponse)
async def lookup_ingredients(
    request: IngredientLookupRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    translator: Annotated[Translator, Depends(get_translator)],
):
    """Translate ingredients and estimate their nutrition.

    Does not count against the suggestion quota.
    """
    texts = split_ingredients(request.ingredients)
    if not texts:
        raise ValidationError("At least one ingredient is required")

    batch = await translator.translate_many(texts)
    results = []
    for translation in batch.translations:
        estimate = await translator.nutrition_service.estimate(translation.canonical_english)
        results.append(
            IngredientLookupResult(
                original=translation.original,
                normalized=translation.normalized,
                canonical_english=translation.canonical_english,
                category=translation.category,
                source=translation.source.value,
                general_form=translation.general_form,
                nutrition_per_100g=(
                    NutritionValues(**estimate.per_100g.to_dict())
                    if estimate.source != "none"
                    else None
                ),
                nutrition_source=estimate.source,
            )
        )

    logger.info(f"User {user_id} looked up {len(texts)} ingredient(s)")
    return IngredientLookupResponse(results=results, failed_ingredients=batch.failed)


@router.post("/nutrition", response_model=NutritionResponse)
async def calculate_nutrition(
    request: NutritionRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    translator: Annotated[Translator, Depends(get_translator)],
    nutrition_service: Annotated[NutritionService, Depends(get_nutrition_service)],
):
    """Calculate total and per-serving nutrition for ingredients with amounts."""
    batch = await translator.translate_many([item.name for item in request.ingredients])
    canonical = {t.original: t.canonical_english for t in batch.translations}

    ingredients = [
        {
            "canonical_name": canonical[item.name.strip()],
            "display_name": item.name,
            "amount": item.amount,
            "unit": item.unit,
        }
        for item in request.ingredients
        if item.name.strip() in canonical
    ]
    result = await nutrition_service.compute_recipe_nutrition(ingredients, request.servings)

    return NutritionResponse(
        total=NutritionValues(**result.total.to_dict()),
        per_serving=NutritionValues(**result.per_serving.to_dict()),
        servings=result.servings,
        failed_ingredients=batch.failed,
    )
