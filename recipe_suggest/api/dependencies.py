"""FastAPI dependencies for authentication and services."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from recipe_suggest.config import get_settings
from recipe_suggest.database import get_db
from recipe_suggest.services.auth import decode_access_token
from recipe_suggest.services.dictionary_store import DictionaryStore
from recipe_suggest.services.llm import LLMService
from recipe_suggest.services.nutrition_service import NutritionService
from recipe_suggest.services.suggestion_service import SuggestionService
from recipe_suggest.services.translator import Translator

security = HTTPBearer()


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> str:
    """Get the caller's opaque user id from the JWT ``sub`` claim."""
    payload = decode_access_token(credentials.credentials)

    if payload is None or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return str(payload["sub"])


def get_llm_service() -> LLMService:
    """Get an LLM service bounded by the request-path translation timeout."""
    return LLMService(timeout=get_settings().translation_timeout_seconds)


def get_nutrition_service(
    db: Annotated[Session, Depends(get_db)],
    llm_service: Annotated[LLMService, Depends(get_llm_service)],
) -> NutritionService:
    """Get nutrition service with dependencies."""
    return NutritionService(db, llm_service)


def get_translator(
    db: Annotated[Session, Depends(get_db)],
    llm_service: Annotated[LLMService, Depends(get_llm_service)],
    nutrition_service: Annotated[NutritionService, Depends(get_nutrition_service)],
) -> Translator:
    """Get translator with dependencies."""
    return Translator(db, llm_service, nutrition_service=nutrition_service)


def get_suggestion_service(
    db: Annotated[Session, Depends(get_db)],
    translator: Annotated[Translator, Depends(get_translator)],
) -> SuggestionService:
    """Get suggestion service with dependencies."""
    return SuggestionService(db, translator)


def get_dictionary_store(db: Annotated[Session, Depends(get_db)]) -> DictionaryStore:
    """Get dictionary store."""
    return DictionaryStore(db)
