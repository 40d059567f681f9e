"""JWT verification for bearer tokens issued by the identity provider."""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from recipe_suggest.config import get_settings

settings = get_settings()


def create_access_token(user_id: str, expires_minutes: int = 60) -> str:
    """Create a JWT access token (used by tooling and tests)."""
    expire = datetime.now(UTC) + timedelta(minutes=expires_minutes)
    to_encode = {"sub": user_id, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
