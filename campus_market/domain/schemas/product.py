"""Pydantic schemas for Product domain."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

REQUIRED_PRODUCT_FIELDS = ("title", "description", "price", "category", "condition")
NON_NULLABLE_PRODUCT_FIELDS = REQUIRED_PRODUCT_FIELDS + ("is_sold",)

SORT_FIELDS = ("created_at", "price", "title")
SORT_ORDERS = ("asc", "desc")


class SellerSummary(BaseModel):
    id: int
    name: str
    email: str
    contact_number: Optional[str] = None
    hostel: Optional[str] = None
    profile_picture: Optional[str] = None

    model_config = {"from_attributes": True}


class SellerDetail(SellerSummary):
    bio: Optional[str] = None


class SellerPublic(BaseModel):
    id: int
    name: str
    email: str
    profile_picture: Optional[str] = None
    report_count: int = 0

    model_config = {"from_attributes": True}


class ProductBase(BaseModel):
    title: str
    description: str
    price: float
    category: str
    condition: str
    image_url: Optional[str] = None
    location: Optional[str] = None


class ProductRead(ProductBase):
    id: int
    user_id: int
    is_sold: bool
    is_reported: bool
    report_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProductSummary(ProductBase):
    """Listing row: product joined with its seller."""
    id: int
    is_sold: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    seller: SellerSummary

    model_config = {"from_attributes": True}


class SellerProduct(ProductBase):
    id: int
    is_sold: bool
    report_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RelatedProduct(BaseModel):
    id: int
    title: str
    price: float
    image_url: Optional[str] = None

    model_config = {"from_attributes": True}


class ProductDetail(ProductSummary):
    report_count: int
    seller: SellerDetail
    related_products: list[RelatedProduct] = []


class ProductWithSeller(ProductRead):
    seller: SellerSummary


class ProductCreate(BaseModel):
    title: str
    description: str
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    category: str
    condition: str
    location: Optional[str] = None

    @field_validator("location", mode="before")
    @classmethod
    def blank_location_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ProductUpdate(BaseModel):
    """Partial update: only fields present in `model_fields_set` are written."""
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = None
    condition: Optional[str] = None
    location: Optional[str] = None
    is_sold: Optional[bool] = None

    model_config = {"extra": "ignore"}

    def changes(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}


class ProductFilter(BaseModel):
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    condition: Optional[str] = None
    search: Optional[str] = None
    exclude_sold: bool = False
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)
    sort_by: str = "created_at"
    sort_order: str = "desc"

    @field_validator("sort_by", mode="before")
    @classmethod
    def fallback_sort_by(cls, value):
        return value if value in SORT_FIELDS else "created_at"

    @field_validator("sort_order", mode="before")
    @classmethod
    def fallback_sort_order(cls, value):
        order = value.lower() if isinstance(value, str) else None
        return order if order in SORT_ORDERS else "desc"


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class ProductPage(BaseModel):
    products: list[ProductSummary]
    pagination: Pagination


class SellerCatalog(BaseModel):
    seller: SellerPublic
    products: list[SellerProduct]
    total_products: int


class CategoryCount(BaseModel):
    category: str
    count: int
