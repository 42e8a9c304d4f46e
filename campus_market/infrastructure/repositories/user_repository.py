"""
SQLAlchemy Implementation of User Repository.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from campus_market.domain.models.product import Product
from campus_market.domain.models.user import User
from campus_market.domain.repositories.user_repository import UserRepository
from campus_market.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyUserRepository(SQLAlchemyRepository[User], UserRepository):
    """User repository implementation using SQLAlchemy."""

    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def list_all(self) -> List[User]:
        return self.db.query(User).order_by(User.id).all()

    def owned_image_urls(self, user_id: int) -> List[str]:
        rows = (
            self.db.query(Product.image_url)
            .filter(Product.user_id == user_id, Product.image_url.isnot(None))
            .all()
        )
        return [r.image_url for r in rows]
