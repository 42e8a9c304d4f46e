"""Pydantic schemas for the moderation ledger."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from campus_market.domain.schemas.product import Pagination


class ReportCreate(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class ReportRead(BaseModel):
    id: int
    user_id: int
    product_id: int
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProductReport(BaseModel):
    """A report joined with its reporter."""
    id: int
    reason: Optional[str] = None
    created_at: Optional[datetime] = None
    reporter_id: int
    reporter_name: str
    reporter_email: str


class ProductReports(BaseModel):
    product_id: int
    total_reports: int
    reports: list[ProductReport]


class ReportedProduct(BaseModel):
    id: int
    title: str
    description: str
    price: float
    category: str
    image_url: Optional[str] = None
    is_reported: bool
    report_count: int
    created_at: Optional[datetime] = None
    seller_id: int
    seller_name: str
    seller_email: str


class ReportedProductPage(BaseModel):
    products: list[ReportedProduct]
    pagination: Pagination
