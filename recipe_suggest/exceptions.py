"""Error taxonomy for the suggestion engine."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from recipe_suggest.services.rate_limiter import RateLimitStatus


class SuggestionEngineError(Exception):
    """Base class for engine errors."""


class ValidationError(SuggestionEngineError):
    """Bad or empty input. Surfaced to the client, never retried."""

    def __init__(
        self,
        message: str,
        failed_ingredients: list[str] | None = None,
        rate_limit: "RateLimitStatus | None" = None,
    ):
        super().__init__(message)
        self.message = message
        self.failed_ingredients = failed_ingredients or []
        self.rate_limit = rate_limit


class UnknownIngredient(SuggestionEngineError):
    """The generative backend marked an ingredient as not a real, edible item."""

    def __init__(self, ingredient: str):
        super().__init__(f"Unknown ingredient: {ingredient}")
        self.ingredient = ingredient


class RateLimitExceeded(SuggestionEngineError):
    """The user's daily quota is exhausted."""

    def __init__(self, status: "RateLimitStatus"):
        super().__init__(
            f"Daily limit of {status.limit} suggestions exceeded. "
            f"Resets at {status.reset_at.isoformat()}"
        )
        self.status = status


class JobNotFound(SuggestionEngineError):
    """No live job with the given id."""


class JobAccessDenied(SuggestionEngineError):
    """The job belongs to another user."""


class DuplicateEntry(SuggestionEngineError):
    """A dictionary entry with the same source or English term already exists."""


class GenerationError(SuggestionEngineError):
    """The generative backend could not produce a usable answer."""


class GenerationParseError(GenerationError):
    """The backend response matched neither the envelope nor the bare recipe list."""


class GenerationTimeout(GenerationError):
    """The backend call exceeded its time bound."""


class StoreUnavailable(SuggestionEngineError):
    """The persistence layer kept failing after retries."""
