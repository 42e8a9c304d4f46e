"""Products API routes — listing, detail, seller catalogs and owner mutations."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from starlette.concurrency import run_in_threadpool

from campus_market.application.services.catalog_service import CatalogService
from campus_market.config import Settings
from campus_market.domain.models.user import User
from campus_market.domain.schemas.auth import Caller
from campus_market.domain.schemas.product import ProductFilter
from campus_market.interfaces.api.deps import get_current_caller, get_optional_user, require_complete_profile
from campus_market.interfaces.api.envelope import ok, read_fields
from campus_market.interfaces.deps import get_app_settings, get_catalog_service

router = APIRouter(prefix="/api", tags=["Products"])

IMAGE_FIELD = "image"


@router.get("/products")
def list_products(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    condition: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    exclude_sold: bool = Query(False, alias="excludeSold"),
    service: CatalogService = Depends(get_catalog_service),
    settings: Settings = Depends(get_app_settings),
):
    filters = ProductFilter(
        category=category or None,
        min_price=min_price,
        max_price=max_price,
        condition=condition or None,
        search=search or None,
        exclude_sold=exclude_sold,
        page=page,
        limit=limit or settings.DEFAULT_PAGE_SIZE,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ok(service.list_products(filters))


@router.get("/products/user/{user_id}")
def products_by_seller(
    user_id: str,
    include_sold: bool = Query(True, alias="includeSold"),
    service: CatalogService = Depends(get_catalog_service),
):
    return ok(service.get_products_by_seller(user_id, include_sold=include_sold))


@router.get("/products/{product_id}")
def product_detail(
    product_id: str,
    service: CatalogService = Depends(get_catalog_service),
    viewer: Optional[User] = Depends(get_optional_user),
):
    detail = service.get_product_detail(product_id)
    data = detail.model_dump()
    data["is_owner"] = viewer is not None and viewer.id == detail.seller.id
    return ok(data)


@router.get("/my-products")
def my_products(
    include_sold: bool = Query(True, alias="includeSold"),
    caller: Caller = Depends(get_current_caller),
    service: CatalogService = Depends(get_catalog_service),
):
    return ok(service.get_my_products(caller, include_sold=include_sold))


@router.get("/categories")
def categories(service: CatalogService = Depends(get_catalog_service)):
    return ok(service.get_categories())


@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(
    request: Request,
    caller: Caller = Depends(require_complete_profile),
    service: CatalogService = Depends(get_catalog_service),
):
    fields, image = await read_fields(request, IMAGE_FIELD)
    product = await run_in_threadpool(service.create_product, caller, fields, image)
    return ok(product, message="Product created successfully")


@router.put("/products/{product_id}")
async def update_product(
    product_id: str,
    request: Request,
    caller: Caller = Depends(get_current_caller),
    service: CatalogService = Depends(get_catalog_service),
):
    fields, image = await read_fields(request, IMAGE_FIELD)
    product = await run_in_threadpool(service.update_product, caller, product_id, fields, image)
    return ok(product, message="Product updated successfully")


@router.delete("/products/{product_id}")
def delete_product(
    product_id: str,
    caller: Caller = Depends(get_current_caller),
    service: CatalogService = Depends(get_catalog_service),
):
    service.delete_product(caller, product_id)
    return ok(message="Product deleted successfully")


@router.patch("/products/{product_id}/sold")
def mark_sold(
    product_id: str,
    caller: Caller = Depends(get_current_caller),
    service: CatalogService = Depends(get_catalog_service),
):
    return ok(service.mark_sold(caller, product_id), message="Product marked as sold")
