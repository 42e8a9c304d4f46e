"""Catalog service — listing, detail and ownership-scoped product mutation.

Store work happens in short-lived sessions; no session is held open while
the asset store is called. Cross-system ordering:

- create: upload, then insert; a failed insert discards the new blob.
- update: upload new, then persist, then discard the superseded blob; a failed
  persist discards the new blob instead.
- delete: delete the row (reports cascade), then discard the blob.
"""

from typing import Any, List, Mapping, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session, sessionmaker

from campus_market.application.services.media_service import asset_key, discard_asset, validate_image
from campus_market.config import Settings
from campus_market.core.exceptions import EntityNotFoundException, ForbiddenException, ValidationException
from campus_market.domain.models.product import Product
from campus_market.domain.repositories.asset_store import AssetStore, ImageUpload
from campus_market.domain.schemas.auth import Caller
from campus_market.domain.schemas.product import (
    NON_NULLABLE_PRODUCT_FIELDS,
    REQUIRED_PRODUCT_FIELDS,
    CategoryCount,
    Pagination,
    ProductCreate,
    ProductDetail,
    ProductFilter,
    ProductPage,
    ProductRead,
    ProductSummary,
    ProductUpdate,
    ProductWithSeller,
    RelatedProduct,
    SellerCatalog,
    SellerDetail,
    SellerProduct,
    SellerPublic,
    SellerSummary,
)
from campus_market.infrastructure.cloudinary_store import PRODUCT_IMAGE_TRANSFORM
from campus_market.infrastructure.repositories.product_repository import SQLAlchemyProductRepository
from campus_market.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

logger = structlog.get_logger(__name__)

PRODUCT_FOLDER = "products"
NOT_FOUND_MESSAGE = "Product not found or not available"
NOT_OWNED_MESSAGE = "Product not found or you don't have permission to modify it"

# Upper bound of the INTEGER primary keys
MAX_ID = 2**31 - 1

POSITIVE_PRICE_ERRORS = {"greater_than", "decimal_parsing", "decimal_type", "missing", "none_required", "finite_number"}


def parse_id(value: Union[int, str, None]) -> Optional[int]:
    """Positive integer id from a path value, or None when it is not numeric
    or falls outside the id column's range."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdecimal()):
            return None
        try:
            parsed = int(text)
        except ValueError:
            return None
    else:
        return None
    return parsed if 0 < parsed <= MAX_ID else None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _price_message(exc: PydanticValidationError) -> Optional[str]:
    """Client message for a failed price, or None when price validated."""
    for err in exc.errors():
        if not err.get("loc") or err["loc"][0] != "price":
            continue
        if err.get("type") in POSITIVE_PRICE_ERRORS:
            return "Price must be a positive number"
        return f"Price: {err.get('msg')}"
    return None


def _error_list(exc: PydanticValidationError) -> list:
    return [{"field": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]


def summarize(product: Product) -> ProductSummary:
    return ProductSummary(
        **ProductRead.model_validate(product).model_dump(),
        seller=SellerSummary.model_validate(product.owner),
    )


def with_seller(product: Product) -> ProductWithSeller:
    return ProductWithSeller(
        **ProductRead.model_validate(product).model_dump(),
        seller=SellerSummary.model_validate(product.owner),
    )


class CatalogService:
    def __init__(self, session_factory: sessionmaker[Session], asset_store: AssetStore, settings: Settings):
        self.session_factory = session_factory
        self.asset_store = asset_store
        self.settings = settings

    # ------------------------------------------------------------------
    # Listing & filtering
    # ------------------------------------------------------------------

    def list_products(self, filters: ProductFilter) -> ProductPage:
        if filters.limit > self.settings.MAX_PAGE_SIZE:
            raise ValidationException(f"limit must be at most {self.settings.MAX_PAGE_SIZE}")
        if filters.min_price is not None and filters.max_price is not None and filters.min_price > filters.max_price:
            raise ValidationException("minPrice cannot be greater than maxPrice")

        with self.session_factory() as db:
            products, total = SQLAlchemyProductRepository(db).list_visible(filters)
            items = [summarize(p) for p in products]

        return ProductPage(products=items, pagination=Pagination.build(filters.page, filters.limit, total))

    def get_product_detail(self, product_id: Union[int, str]) -> ProductDetail:
        pid = parse_id(product_id)
        if pid is None:
            raise EntityNotFoundException(NOT_FOUND_MESSAGE)

        with self.session_factory() as db:
            repo = SQLAlchemyProductRepository(db)
            product = repo.get_visible(pid)
            if product is None:
                raise EntityNotFoundException(NOT_FOUND_MESSAGE)
            related = repo.get_related(product)

            return ProductDetail(
                **ProductRead.model_validate(product).model_dump(),
                seller=SellerDetail.model_validate(product.owner),
                related_products=[RelatedProduct.model_validate(p) for p in related],
            )

    def get_products_by_seller(self, seller_id: Union[int, str], include_sold: bool = True) -> SellerCatalog:
        sid = parse_id(seller_id)
        if sid is None:
            raise EntityNotFoundException("User not found")

        with self.session_factory() as db:
            seller = SQLAlchemyUserRepository(db).get_by_id(sid)
            if seller is None:
                raise EntityNotFoundException("User not found")
            if seller.is_reported:
                raise ForbiddenException("User account is not available")

            products = SQLAlchemyProductRepository(db).list_by_seller(sid, include_sold=include_sold)
            return SellerCatalog(
                seller=SellerPublic.model_validate(seller),
                products=[SellerProduct.model_validate(p) for p in products],
                total_products=len(products),
            )

    def get_my_products(self, caller: Caller, include_sold: bool = True) -> SellerCatalog:
        return self.get_products_by_seller(caller.id, include_sold=include_sold)

    def get_categories(self) -> List[CategoryCount]:
        with self.session_factory() as db:
            rows = SQLAlchemyProductRepository(db).get_category_counts()
        return [CategoryCount(**row) for row in rows]

    # ------------------------------------------------------------------
    # Mutation & ownership
    # ------------------------------------------------------------------

    def _validate_create(self, fields: Mapping[str, Any]) -> ProductCreate:
        missing = [name for name in REQUIRED_PRODUCT_FIELDS if _is_blank(fields.get(name))]
        if missing:
            raise ValidationException(
                "Please provide all required fields: title, description, price, category, and condition",
                details={"missing": missing},
            )
        try:
            return ProductCreate.model_validate(dict(fields))
        except PydanticValidationError as exc:
            price_message = _price_message(exc)
            if price_message:
                raise ValidationException(price_message) from exc
            raise ValidationException("Invalid product fields", details={"errors": _error_list(exc)}) from exc

    def _validate_update(self, fields: Mapping[str, Any]) -> dict:
        try:
            update = ProductUpdate.model_validate(dict(fields))
        except PydanticValidationError as exc:
            price_message = _price_message(exc)
            if price_message:
                raise ValidationException(price_message) from exc
            raise ValidationException("Invalid product fields", details={"errors": _error_list(exc)}) from exc

        changes = update.changes()
        nulled = [name for name in NON_NULLABLE_PRODUCT_FIELDS if name in changes and changes[name] is None]
        if nulled:
            raise ValidationException("Required fields cannot be null", details={"fields": sorted(nulled)})
        return changes

    def create_product(
        self,
        caller: Caller,
        fields: Mapping[str, Any],
        image: Optional[ImageUpload] = None,
    ) -> ProductWithSeller:
        if caller.is_reported:
            raise ForbiddenException("Account is restricted from creating products")

        data = self._validate_create(fields)
        if image is not None:
            validate_image(image, self.settings)

        image_url = None
        if image is not None:
            stored = self.asset_store.upload(
                image,
                folder=PRODUCT_FOLDER,
                key=asset_key("product"),
                transformation=PRODUCT_IMAGE_TRANSFORM,
            )
            image_url = stored.url

        try:
            with self.session_factory() as db:
                repo = SQLAlchemyProductRepository(db)
                product = repo.create({**data.model_dump(), "image_url": image_url, "user_id": caller.id})
                db.commit()
                created = with_seller(product)
        except Exception:
            logger.exception("Product insert failed", user_id=caller.id, had_image=image_url is not None)
            discard_asset(self.asset_store, image_url, self.settings, reason="failed product insert")
            raise

        logger.info("Product created", product_id=created.id, user_id=caller.id)
        return created

    def update_product(
        self,
        caller: Caller,
        product_id: Union[int, str],
        fields: Mapping[str, Any],
        image: Optional[ImageUpload] = None,
    ) -> ProductWithSeller:
        pid = parse_id(product_id)
        if pid is None:
            raise EntityNotFoundException(NOT_OWNED_MESSAGE)

        changes = self._validate_update(fields)
        if image is not None:
            validate_image(image, self.settings)
        if not changes and image is None:
            raise ValidationException("No fields to update")

        with self.session_factory() as db:
            current = SQLAlchemyProductRepository(db).get_owned(pid, caller.id)
            if current is None:
                raise EntityNotFoundException(NOT_OWNED_MESSAGE)
            previous_image_url = current.image_url

        new_image_url = None
        if image is not None:
            stored = self.asset_store.upload(
                image,
                folder=PRODUCT_FOLDER,
                key=asset_key(f"product_{pid}"),
                transformation=PRODUCT_IMAGE_TRANSFORM,
            )
            new_image_url = stored.url
            changes["image_url"] = new_image_url

        try:
            with self.session_factory() as db:
                repo = SQLAlchemyProductRepository(db)
                if not repo.update_owned(pid, caller.id, changes):
                    raise EntityNotFoundException(NOT_OWNED_MESSAGE)
                db.commit()
                updated = with_seller(repo.get_by_id(pid))
        except Exception:
            discard_asset(self.asset_store, new_image_url, self.settings, reason="failed product update")
            raise

        if new_image_url is not None:
            discard_asset(self.asset_store, previous_image_url, self.settings, reason="product image replaced")

        logger.info("Product updated", product_id=pid, user_id=caller.id, fields=sorted(changes))
        return updated

    def delete_product(self, caller: Caller, product_id: Union[int, str]) -> None:
        pid = parse_id(product_id)
        if pid is None:
            raise EntityNotFoundException(NOT_OWNED_MESSAGE)

        with self.session_factory() as db:
            repo = SQLAlchemyProductRepository(db)
            product = repo.get_owned(pid, caller.id, include_reported=True)
            if product is None:
                raise EntityNotFoundException(NOT_OWNED_MESSAGE)
            image_url = product.image_url
            repo.delete_owned(product)
            db.commit()

        discard_asset(self.asset_store, image_url, self.settings, reason="product deleted")
        logger.info("Product deleted", product_id=pid, user_id=caller.id)

    def mark_sold(self, caller: Caller, product_id: Union[int, str]) -> ProductRead:
        pid = parse_id(product_id)
        if pid is None:
            raise EntityNotFoundException(NOT_OWNED_MESSAGE)

        with self.session_factory() as db:
            repo = SQLAlchemyProductRepository(db)
            if not repo.update_owned(pid, caller.id, {"is_sold": True}):
                raise EntityNotFoundException(NOT_OWNED_MESSAGE)
            db.commit()
            return ProductRead.model_validate(repo.get_by_id(pid))
