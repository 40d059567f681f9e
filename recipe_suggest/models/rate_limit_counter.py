"""Per-user daily request counter."""

from sqlalchemy import Column, Date, Integer, String, UniqueConstraint

from recipe_suggest.database import Base


class RateLimitCounter(Base):
    """Requests counted for one user within one UTC day."""

    __tablename__ = "rate_limit_counters"
    __table_args__ = (UniqueConstraint("user_id", "window_start", name="uq_rate_limit_window"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    window_start = Column(Date, nullable=False)
    count = Column(Integer, nullable=False, default=0)
