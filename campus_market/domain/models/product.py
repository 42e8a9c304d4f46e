"""Product domain model — maps to the 'products' table."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from campus_market.infrastructure.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_products_price_positive"),
        CheckConstraint("report_count >= 0", name="ck_products_report_count"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, index=True)
    category = Column(String(100), nullable=False, index=True)
    condition = Column(String(50), nullable=False)
    image_url = Column(String(1000), nullable=True)
    location = Column(String(200), nullable=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_sold = Column(Boolean, nullable=False, default=False, server_default="0")

    # Moderation
    is_reported = Column(Boolean, nullable=False, default=False, server_default="0", index=True)
    report_count = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="products")
    reports = relationship("Report", back_populates="product", passive_deletes="all")

    def __repr__(self):
        return f"<Product {self.id} - {self.title}>"
