"""FastAPI dependency — JWT auth and caller guards.

The user row is read in its own short session that is closed before the
route runs, so no pooled connection stays checked out while a service
talks to the asset store.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campus_market.application.services.auth_service import caller_from_user, decode_access_token
from campus_market.core.exceptions import ForbiddenException, UnauthorizedException
from campus_market.domain.models.user import User
from campus_market.domain.schemas.auth import Caller
from campus_market.infrastructure.container import AppContainer
from campus_market.interfaces.deps import get_container

security = HTTPBearer(auto_error=False)


def _resolve_user(
    credentials: Optional[HTTPAuthorizationCredentials],
    container: AppContainer,
) -> Optional[User]:
    """Detached user for a valid bearer token, or None."""
    if credentials is None:
        return None
    user_id = decode_access_token(container.settings, credentials.credentials)
    if user_id is None:
        return None
    with container.session_factory() as db:
        return db.get(User, user_id)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    container: AppContainer = Depends(get_container),
) -> User:
    """Extract and validate the current user from JWT token."""
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    user = _resolve_user(credentials, container)
    if user is None:
        raise UnauthorizedException("Invalid or expired token")
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    container: AppContainer = Depends(get_container),
) -> Optional[User]:
    return _resolve_user(credentials, container)


def get_current_caller(user: User = Depends(get_current_user)) -> Caller:
    return caller_from_user(user)


def require_complete_profile(caller: Caller = Depends(get_current_caller)) -> Caller:
    if not caller.has_complete_profile:
        raise ForbiddenException("Please complete your profile (contact number and hostel) first")
    return caller


def require_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Require admin role."""
    if not caller.is_admin:
        raise ForbiddenException("Admin access required")
    return caller
