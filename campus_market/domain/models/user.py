"""User domain model — maps to the 'users' table."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from campus_market.infrastructure.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    contact_number = Column(String(20), nullable=True)
    hostel = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    profile_picture = Column(String(1000), nullable=True)
    role = Column(String(20), nullable=False, default="user")  # user, admin

    # Moderation
    is_reported = Column(Boolean, nullable=False, default=False, server_default="0", index=True)
    report_count = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    products = relationship("Product", back_populates="owner", passive_deletes="all")

    @property
    def has_complete_profile(self) -> bool:
        return bool(self.contact_number) and bool(self.hostel)

    def __repr__(self):
        return f"<User {self.email}>"
