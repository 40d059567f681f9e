"""Per-user daily rate limiting for suggestion requests."""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recipe_suggest.config import get_settings
from recipe_suggest.database import store_operation
from recipe_suggest.models.mixins import utcnow
from recipe_suggest.models.rate_limit_counter import RateLimitCounter

logger = logging.getLogger(__name__)


@dataclass
class RateLimitStatus:
    """Quota state for one user in the current window."""

    allowed: bool
    limit: int
    current_count: int
    reset_at: datetime

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current_count)

    @property
    def retry_after_seconds(self) -> int:
        return max(0, int((self.reset_at - utcnow()).total_seconds()))

    def headers(self) -> dict[str, str]:
        """HTTP headers describing this status."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": self.reset_at.isoformat(),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers

    def to_dict(self) -> dict:
        return {
            "limit": self.limit,
            "remaining": self.remaining,
            "current_count": self.current_count,
            "reset_at": self.reset_at,
        }


def window_for(now: datetime) -> tuple[date, datetime]:
    """UTC calendar day containing ``now`` and the following UTC midnight."""
    day = now.astimezone(UTC).date()
    reset_at = datetime.combine(day + timedelta(days=1), time.min, tzinfo=UTC)
    return day, reset_at


class RateLimiter:
    """Fixed-window daily counter stored in the database.

    Reservations use a conditional UPDATE so concurrent requests from one
    user can never push the count past the limit. Store retries wrap single
    statements, so a committed increment is never replayed.
    """

    def __init__(self, db: Session, limit: int | None = None):
        self.db = db
        self.limit = limit or get_settings().suggestion_daily_limit

    @store_operation
    def _current_count(self, user_id: str, day: date) -> int:
        counter = (
            self.db.query(RateLimitCounter)
            .filter(RateLimitCounter.user_id == user_id, RateLimitCounter.window_start == day)
            .first()
        )
        return counter.count if counter else 0

    def peek(self, user_id: str, now: datetime | None = None) -> RateLimitStatus:
        """Read the current quota without charging it."""
        day, reset_at = window_for(now or utcnow())
        count = self._current_count(user_id, day)
        return RateLimitStatus(
            allowed=count < self.limit,
            limit=self.limit,
            current_count=count,
            reset_at=reset_at,
        )

    def check_and_reserve(self, user_id: str, now: datetime | None = None) -> RateLimitStatus:
        """Charge one request against the quota if any is left.

        Rejected requests do not increment the counter.
        """
        day, reset_at = window_for(now or utcnow())

        for _ in range(2):
            if self._increment(user_id, day):
                count = self._current_count(user_id, day)
                return RateLimitStatus(True, self.limit, count, reset_at)

            if self._current_count(user_id, day) > 0:
                break

            if self._open_window(user_id, day):
                return RateLimitStatus(True, self.limit, 1, reset_at)

        count = self._current_count(user_id, day)
        logger.info(f"Rate limit exceeded for user {user_id} ({count}/{self.limit})")
        return RateLimitStatus(False, self.limit, count, reset_at)

    @store_operation
    def _increment(self, user_id: str, day: date) -> bool:
        updated = (
            self.db.query(RateLimitCounter)
            .filter(
                RateLimitCounter.user_id == user_id,
                RateLimitCounter.window_start == day,
                RateLimitCounter.count < self.limit,
            )
            .update({RateLimitCounter.count: RateLimitCounter.count + 1}, synchronize_session=False)
        )
        self.db.commit()
        return updated > 0

    @store_operation
    def _open_window(self, user_id: str, day: date) -> bool:
        """Create the window's counter at 1. False if another request created it first."""
        self.db.add(RateLimitCounter(user_id=user_id, window_start=day, count=1))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return True
