"""
User Repository Interface.
"""

from typing import List, Optional

from campus_market.domain.models.user import User
from campus_market.domain.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Interface for User-specific operations."""

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def list_all(self) -> List[User]:
        ...

    def owned_image_urls(self, user_id: int) -> List[str]:
        """Image URLs of every product the user owns."""
        ...
