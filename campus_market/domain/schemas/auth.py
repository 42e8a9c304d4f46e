"""Pydantic schemas for User, profile and the resolved caller."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Caller(BaseModel):
    """The authenticated principal as seen by the services."""
    id: int
    is_reported: bool = False
    has_complete_profile: bool = False
    is_admin: bool = False

    model_config = {"frozen": True}


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    contact_number: Optional[str] = None
    hostel: Optional[str] = None
    bio: Optional[str] = None
    profile_picture: Optional[str] = None
    role: str
    is_reported: bool
    report_count: int

    model_config = {"from_attributes": True}


class UserListItem(BaseModel):
    id: int
    name: str
    email: str
    profile_picture: Optional[str] = None

    model_config = {"from_attributes": True}


class CompleteProfileRequest(BaseModel):
    contact_number: str
    hostel: str


class ProfileUpdate(BaseModel):
    """Partial update: only fields present in `model_fields_set` are written."""
    name: Optional[str] = None
    bio: Optional[str] = None
    contact_number: Optional[str] = None
    hostel: Optional[str] = None

    model_config = {"extra": "ignore"}

    def changes(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}
