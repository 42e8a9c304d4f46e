"""Auth service — JWT token management and caller resolution."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from campus_market.application.services.catalog_service import parse_id
from campus_market.config import Settings
from campus_market.domain.models.user import User
from campus_market.domain.schemas.auth import Caller

ADMIN_ROLE = "admin"


def create_access_token(settings: Settings, user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    )
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(settings: Settings, token: str) -> Optional[int]:
    """User id carried by a valid token, or None."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None

    sub = payload.get("sub")
    if sub is None:
        return None
    return parse_id(str(sub))


def caller_from_user(user: User) -> Caller:
    return Caller(
        id=user.id,
        is_reported=bool(user.is_reported),
        has_complete_profile=user.has_complete_profile,
        is_admin=user.role == ADMIN_ROLE,
    )
