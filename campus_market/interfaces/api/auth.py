"""Auth API routes — the resolved caller."""

from fastapi import APIRouter, Depends

from campus_market.domain.models.user import User
from campus_market.domain.schemas.auth import UserRead
from campus_market.interfaces.api.deps import get_current_user
from campus_market.interfaces.api.envelope import ok

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    data = UserRead.model_validate(user).model_dump()
    data["has_complete_profile"] = user.has_complete_profile
    return ok(data)
