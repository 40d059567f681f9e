"""Dictionary admin API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from recipe_suggest.api.dependencies import get_current_user_id, get_dictionary_store
from recipe_suggest.models.enums import EntrySource
from recipe_suggest.schemas.dictionary import DictionaryEntryCreate, DictionaryEntryResponse
from recipe_suggest.services.dictionary_store import DictionaryStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/dictionary", tags=["dictionary"])


@router.post("", response_model=DictionaryEntryResponse, status_code=status.HTTP_201_CREATED)
def create_dictionary_entry(
    entry_data: DictionaryEntryCreate,
    user_id: Annotated[str, Depends(get_current_user_id)],
    store: Annotated[DictionaryStore, Depends(get_dictionary_store)],
):
    """Add a curated translation to the permanent dictionary."""
    entry = store.add(
        source_text=entry_data.source_text,
        canonical_english=entry_data.canonical_english,
        category=entry_data.category,
        general_form=entry_data.general_form,
        nutrition_per_100g=(
            entry_data.nutrition_per_100g.model_dump() if entry_data.nutrition_per_100g else None
        ),
        added_by=EntrySource.ADMIN,
    )
    logger.info(f"User {user_id} added dictionary entry '{entry.normalized_source}'")
    return entry
