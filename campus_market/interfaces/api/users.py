"""User profile API routes."""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from starlette.concurrency import run_in_threadpool

from campus_market.application.services.profile_service import (
    ProfileService,
    profile_completed_notice,
    profile_updated_notice,
)
from campus_market.domain.schemas.auth import Caller, CompleteProfileRequest
from campus_market.infrastructure.mailer import Mailer
from campus_market.interfaces.api.deps import get_current_caller, require_complete_profile
from campus_market.interfaces.api.envelope import ok, read_fields
from campus_market.interfaces.deps import get_mailer, get_profile_service

router = APIRouter(prefix="/api/users", tags=["Users"])

PICTURE_FIELD = "profile_picture"


@router.post("/complete-profile")
def complete_profile(
    body: CompleteProfileRequest,
    background_tasks: BackgroundTasks,
    caller: Caller = Depends(get_current_caller),
    service: ProfileService = Depends(get_profile_service),
    mailer: Mailer = Depends(get_mailer),
):
    user = service.complete_profile(caller, body.contact_number, body.hostel)
    subject, text = profile_completed_notice(user)
    background_tasks.add_task(mailer.send, user.email, subject, text)
    return ok(user, message="Profile updated successfully")


@router.put("/update-profile")
async def update_profile(
    request: Request,
    background_tasks: BackgroundTasks,
    caller: Caller = Depends(require_complete_profile),
    service: ProfileService = Depends(get_profile_service),
    mailer: Mailer = Depends(get_mailer),
):
    fields, picture = await read_fields(request, PICTURE_FIELD)
    user, changes = await run_in_threadpool(service.update_profile, caller, fields, picture)
    subject, text = profile_updated_notice(user, changes, picture_changed=picture is not None)
    background_tasks.add_task(mailer.send, user.email, subject, text)
    return ok(user, message="Profile updated successfully")


@router.get("/get-profile/{user_id}")
def get_profile(
    user_id: str,
    caller: Caller = Depends(get_current_caller),
    service: ProfileService = Depends(get_profile_service),
):
    return ok(service.get_profile(user_id))


@router.get("/get-all-users")
def get_all_users(
    caller: Caller = Depends(get_current_caller),
    service: ProfileService = Depends(get_profile_service),
):
    return ok(service.list_profiles())


@router.delete("/delete-profile")
def delete_profile(
    caller: Caller = Depends(get_current_caller),
    service: ProfileService = Depends(get_profile_service),
):
    service.delete_profile(caller)
    return ok(message="Profile deleted successfully")
