"""Database configuration and session management."""

import logging
from collections.abc import Callable, Generator
from functools import wraps
from typing import Any, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from recipe_suggest.config import get_settings
from recipe_suggest.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

settings = get_settings()

_engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
if not settings.database_url.startswith("sqlite"):
    _engine_kwargs.update(pool_size=5, max_overflow=10)

engine = create_engine(settings.database_url, **_engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base: Any = declarative_base()

F = TypeVar("F", bound=Callable[..., Any])


def get_db() -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize the database by creating all tables."""
    # Import all models here so they are registered with Base.metadata
    from recipe_suggest import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def store_operation(func: F) -> F:
    """Retry transient store failures with backoff, then raise StoreUnavailable.

    Wrapped methods must belong to an object with a ``db`` session attribute;
    the session is rolled back between attempts.
    """

    @retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, max=2),
        reraise=False,
    )
    def _attempt(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except OperationalError:
            self.db.rollback()
            logger.warning(f"Transient store error in {func.__qualname__}, retrying")
            raise

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return _attempt(self, *args, **kwargs)
        except RetryError as e:
            raise StoreUnavailable(f"{func.__qualname__} failed after retries") from e

    return wrapper  # type: ignore[return-value]
