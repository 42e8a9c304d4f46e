"""Profile service — OAuth upsert, profile completion/update, account deletion."""

from typing import Any, List, Mapping, Optional, Tuple, Union

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from campus_market.application.services.auth_service import ADMIN_ROLE
from campus_market.application.services.catalog_service import parse_id
from campus_market.application.services.media_service import asset_key, discard_asset, validate_image
from campus_market.config import Settings
from campus_market.core.exceptions import EntityNotFoundException, ValidationException
from campus_market.domain.repositories.asset_store import AssetStore, ImageUpload
from campus_market.domain.schemas.auth import Caller, ProfileUpdate, UserListItem, UserRead
from campus_market.infrastructure.cloudinary_store import PROFILE_PICTURE_TRANSFORM
from campus_market.infrastructure.repositories.report_repository import SQLAlchemyReportRepository
from campus_market.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

logger = structlog.get_logger(__name__)

PROFILE_FOLDER = "profile_pictures"
NOTICE_SUBJECT = "Profile Updated Successfully"

_FIELD_LABELS = {
    "name": "Name",
    "bio": "Bio",
    "contact_number": "Contact Number",
    "hostel": "Hostel",
}


def profile_completed_notice(user: UserRead) -> Tuple[str, str]:
    body = (
        f"Hello {user.name},\n\n"
        f"Your profile has been updated successfully with contact {user.contact_number} "
        f"and hostel {user.hostel}.\n\nThank you!"
    )
    return NOTICE_SUBJECT, body


def profile_updated_notice(user: UserRead, changes: Mapping[str, Any], picture_changed: bool) -> Tuple[str, str]:
    lines = [f"- {label}: {changes[field]}" for field, label in _FIELD_LABELS.items() if field in changes]
    if picture_changed:
        lines.append("- Profile Picture: Updated")
    body = (
        f"Hello {user.name},\n\n"
        "Your profile has been updated successfully with the following changes:\n"
        + "\n".join(lines)
        + "\n\nThank you!"
    )
    return NOTICE_SUBJECT, body


class ProfileService:
    def __init__(self, session_factory: sessionmaker[Session], asset_store: AssetStore, settings: Settings):
        self.session_factory = session_factory
        self.asset_store = asset_store
        self.settings = settings

    def _role_for(self, email: str) -> str:
        admins = {e.lower() for e in self.settings.ADMIN_EMAILS}
        return ADMIN_ROLE if email.lower() in admins else "user"

    def upsert_oauth_user(self, name: str, email: str, picture: Optional[str] = None) -> UserRead:
        """Return the user for `email`, creating it on first login."""
        with self.session_factory() as db:
            repo = SQLAlchemyUserRepository(db)
            user = repo.get_by_email(email)
            if user is not None:
                return UserRead.model_validate(user)

            try:
                user = repo.create(
                    {"name": name, "email": email, "profile_picture": picture, "role": self._role_for(email)}
                )
                db.commit()
            except IntegrityError:
                # Lost a concurrent first-login race; the other insert won.
                db.rollback()
                user = repo.get_by_email(email)
                if user is None:
                    raise
                return UserRead.model_validate(user)

            logger.info("User created from OAuth login", user_id=user.id, role=user.role)
            return UserRead.model_validate(user)

    def get_profile(self, user_id: Union[int, str]) -> UserRead:
        uid = parse_id(user_id)
        if uid is None:
            raise EntityNotFoundException("User not found")

        with self.session_factory() as db:
            user = SQLAlchemyUserRepository(db).get_by_id(uid)
            if user is None:
                raise EntityNotFoundException("User not found")
            return UserRead.model_validate(user)

    def list_profiles(self) -> List[UserListItem]:
        with self.session_factory() as db:
            return [UserListItem.model_validate(u) for u in SQLAlchemyUserRepository(db).list_all()]

    def complete_profile(self, caller: Caller, contact_number: Optional[str], hostel: Optional[str]) -> UserRead:
        missing = [
            name for name, value in (("contact_number", contact_number), ("hostel", hostel))
            if value is None or not str(value).strip()
        ]
        if missing:
            raise ValidationException("contact_number and hostel are required", details={"missing": missing})

        with self.session_factory() as db:
            repo = SQLAlchemyUserRepository(db)
            user = repo.get_by_id(caller.id)
            if user is None:
                raise EntityNotFoundException("User not found")
            user = repo.update(user, {"contact_number": contact_number.strip(), "hostel": hostel.strip()})
            db.commit()
            result = UserRead.model_validate(user)

        logger.info("Profile completed", user_id=caller.id)
        return result

    def update_profile(
        self,
        caller: Caller,
        fields: Mapping[str, Any],
        picture: Optional[ImageUpload] = None,
    ) -> Tuple[UserRead, dict]:
        """Apply a partial update. Returns the user and the fields that changed."""
        try:
            changes = ProfileUpdate.model_validate(dict(fields)).changes()
        except PydanticValidationError as exc:
            raise ValidationException("Invalid profile fields") from exc

        if "name" in changes and (changes["name"] is None or not changes["name"].strip()):
            raise ValidationException("Name cannot be empty")
        if picture is not None:
            validate_image(picture, self.settings)
        if not changes and picture is None:
            raise ValidationException("No fields to update")

        with self.session_factory() as db:
            current = SQLAlchemyUserRepository(db).get_by_id(caller.id)
            if current is None:
                raise EntityNotFoundException("User not found")
            previous_picture = current.profile_picture

        values = dict(changes)
        new_picture = None
        if picture is not None:
            stored = self.asset_store.upload(
                picture,
                folder=PROFILE_FOLDER,
                key=asset_key(f"user_{caller.id}"),
                transformation=PROFILE_PICTURE_TRANSFORM,
            )
            new_picture = stored.url
            values["profile_picture"] = new_picture

        try:
            with self.session_factory() as db:
                repo = SQLAlchemyUserRepository(db)
                user = repo.get_by_id(caller.id)
                if user is None:
                    raise EntityNotFoundException("User not found")
                user = repo.update(user, values)
                db.commit()
                result = UserRead.model_validate(user)
        except Exception:
            discard_asset(self.asset_store, new_picture, self.settings, reason="failed profile update")
            raise

        if new_picture is not None:
            discard_asset(self.asset_store, previous_picture, self.settings, reason="profile picture replaced")

        logger.info("Profile updated", user_id=caller.id, fields=sorted(values))
        return result, changes

    def delete_profile(self, caller: Caller) -> None:
        """Delete the caller's account, its products and every report it touches."""
        with self.session_factory() as db:
            users = SQLAlchemyUserRepository(db)
            user = users.get_by_id(caller.id)
            if user is None:
                raise EntityNotFoundException("User not found")

            reports = SQLAlchemyReportRepository(db)
            for report in reports.list_by_reporter(caller.id):
                reports.release(report.product_id, report.product.user_id)

            image_urls = users.owned_image_urls(caller.id)
            picture = user.profile_picture
            users.delete(caller.id)
            db.commit()

        for url in [*image_urls, picture]:
            discard_asset(self.asset_store, url, self.settings, reason="account deleted")

        logger.info("Profile deleted", user_id=caller.id, discarded_images=len(image_urls))
