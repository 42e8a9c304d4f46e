"""Tests for ownership-scoped product mutation and asset coordination."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from campus_market.core.exceptions import (
    EntityNotFoundException,
    ForbiddenException,
    UpstreamServiceException,
    ValidationException,
)
from campus_market.domain.models.product import Product
from campus_market.domain.models.report import Report
from campus_market.domain.models.user import User
from campus_market.domain.repositories.asset_store import ImageUpload
from campus_market.domain.schemas.auth import Caller
from campus_market.infrastructure.repositories.product_repository import SQLAlchemyProductRepository

OLD_IMAGE = "https://res.cloudinary.com/demo/image/upload/v1/products/old_desk.jpg"

VALID_FIELDS = {
    "title": "Desk",
    "description": "Sturdy wooden study desk",
    "price": "50",
    "category": "Furniture",
    "condition": "Used",
}


def _count_products(session_factory) -> int:
    with session_factory() as db:
        return db.query(Product).count()


class TestCreateProduct:
    """Test create_product."""

    def test_create_with_image(self, catalog, asset_store, make_user, caller_for, image):
        seller = make_user(name="Kofi")

        product = catalog.create_product(caller_for(seller), VALID_FIELDS, image)

        assert product.price == 50.0
        assert product.seller.name == "Kofi"
        assert product.image_url == asset_store.uploads[0].url
        assert asset_store.uploads[0].public_id.startswith("products/product_")

    def test_create_without_image(self, catalog, asset_store, make_user, caller_for):
        product = catalog.create_product(caller_for(make_user()), {**VALID_FIELDS, "location": "  "})
        assert product.image_url is None
        assert product.location is None
        assert asset_store.uploads == []

    def test_reported_caller_is_forbidden_before_upload(self, catalog, asset_store, make_user, caller_for, image):
        caller = caller_for(make_user(is_reported=True))
        with pytest.raises(ForbiddenException):
            catalog.create_product(caller, VALID_FIELDS, image)
        assert asset_store.uploads == []

    def test_missing_fields(self, catalog, asset_store, make_user, caller_for, image):
        fields = {**VALID_FIELDS, "condition": ""}
        with pytest.raises(ValidationException) as exc_info:
            catalog.create_product(caller_for(make_user()), fields, image)
        assert exc_info.value.details["missing"] == ["condition"]
        assert asset_store.uploads == []

    @pytest.mark.parametrize("price", ["-5", "0", "abc"])
    def test_price_must_be_positive(self, catalog, make_user, caller_for, price):
        with pytest.raises(ValidationException) as exc_info:
            catalog.create_product(caller_for(make_user()), {**VALID_FIELDS, "price": price})
        assert exc_info.value.message == "Price must be a positive number"

    @pytest.mark.parametrize("price", ["50.123", "123456789.99"])
    def test_price_precision_errors_keep_their_own_message(self, catalog, make_user, caller_for, price):
        with pytest.raises(ValidationException) as exc_info:
            catalog.create_product(caller_for(make_user()), {**VALID_FIELDS, "price": price})
        assert exc_info.value.message != "Price must be a positive number"
        assert exc_info.value.message.startswith("Price: ")

    def test_invalid_image_type_is_rejected_before_upload(self, catalog, asset_store, make_user, caller_for):
        pdf = ImageUpload(content=b"%PDF-1.4", content_type="application/pdf", filename="x.pdf")
        with pytest.raises(ValidationException):
            catalog.create_product(caller_for(make_user()), VALID_FIELDS, pdf)
        assert asset_store.uploads == []

    def test_oversized_image_is_rejected(self, catalog, settings, make_user, caller_for):
        big = ImageUpload(content=b"x" * (settings.MAX_IMAGE_SIZE + 1), content_type="image/png")
        with pytest.raises(ValidationException):
            catalog.create_product(caller_for(make_user()), VALID_FIELDS, big)

    def test_upload_timeout_aborts_create(self, catalog, asset_store, session_factory, make_user, caller_for, image):
        asset_store.fail_uploads = True
        with pytest.raises(UpstreamServiceException):
            catalog.create_product(caller_for(make_user()), VALID_FIELDS, image)
        assert _count_products(session_factory) == 0

    def test_failed_insert_discards_uploaded_blob(self, catalog, asset_store, session_factory, image):
        ghost = Caller(id=9999, has_complete_profile=True)
        with pytest.raises(IntegrityError):
            catalog.create_product(ghost, VALID_FIELDS, image)
        assert asset_store.deleted == [asset_store.uploads[0].public_id]
        assert _count_products(session_factory) == 0

    def test_failed_discard_does_not_mask_insert_error(self, catalog, asset_store, session_factory, image):
        asset_store.fail_deletes = True
        ghost = Caller(id=9999, has_complete_profile=True)
        with pytest.raises(IntegrityError):
            catalog.create_product(ghost, VALID_FIELDS, image)
        assert len(asset_store.uploads) == 1
        assert _count_products(session_factory) == 0


class TestUpdateProduct:
    """Test update_product."""

    def test_price_only_update(self, catalog, fetch, make_user, make_product, caller_for):
        seller = make_user()
        pid = make_product(seller, title="Desk", price=Decimal("50.00"), location="Library")

        updated = catalog.update_product(caller_for(seller), pid, {"price": "45"})

        assert updated.price == 45.0
        stored = fetch(Product, pid)
        assert stored.title == "Desk"
        assert stored.location == "Library"

    def test_null_location_and_empty_string_are_values(self, catalog, fetch, make_user, make_product, caller_for):
        seller = make_user()
        pid = make_product(seller, location="Library")

        catalog.update_product(caller_for(seller), pid, {"location": None})
        assert fetch(Product, pid).location is None

        catalog.update_product(caller_for(seller), pid, {"description": ""})
        assert fetch(Product, pid).description == ""

    def test_null_required_field_is_rejected(self, catalog, make_user, make_product, caller_for):
        seller = make_user()
        pid = make_product(seller)
        with pytest.raises(ValidationException):
            catalog.update_product(caller_for(seller), pid, {"title": None})

    def test_nothing_to_update(self, catalog, make_user, make_product, caller_for):
        seller = make_user()
        pid = make_product(seller)
        with pytest.raises(ValidationException) as exc_info:
            catalog.update_product(caller_for(seller), pid, {"unknown": "x"})
        assert exc_info.value.message == "No fields to update"

    def test_other_owner_gets_not_found(self, catalog, fetch, make_user, make_product, caller_for):
        pid = make_product(make_user(), title="Desk")
        with pytest.raises(EntityNotFoundException):
            catalog.update_product(caller_for(make_user()), pid, {"title": "Mine now"})
        assert fetch(Product, pid).title == "Desk"

    def test_reported_product_is_locked(self, catalog, make_user, make_product, caller_for):
        seller = make_user()
        pid = make_product(seller, is_reported=True)
        with pytest.raises(EntityNotFoundException):
            catalog.update_product(caller_for(seller), pid, {"title": "Fixed"})

    def test_image_replacement_deletes_old_blob_after_persist(
        self, catalog, asset_store, fetch, make_user, make_product, caller_for, image
    ):
        seller = make_user()
        pid = make_product(seller, image_url=OLD_IMAGE)

        updated = catalog.update_product(caller_for(seller), pid, {}, image)

        assert updated.image_url == asset_store.uploads[0].url
        assert fetch(Product, pid).image_url == asset_store.uploads[0].url
        assert asset_store.deleted == ["products/old_desk"]

    def test_failed_persist_discards_new_blob(
        self, catalog, asset_store, fetch, make_user, make_product, caller_for, image, monkeypatch
    ):
        seller = make_user()
        pid = make_product(seller, image_url=OLD_IMAGE)
        monkeypatch.setattr(SQLAlchemyProductRepository, "update_owned", lambda self, *args: 0)

        with pytest.raises(EntityNotFoundException):
            catalog.update_product(caller_for(seller), pid, {}, image)

        assert asset_store.deleted == [asset_store.uploads[0].public_id]
        assert fetch(Product, pid).image_url == OLD_IMAGE

    def test_old_blob_delete_failure_is_not_surfaced(
        self, catalog, asset_store, make_user, make_product, caller_for, image
    ):
        seller = make_user()
        pid = make_product(seller, image_url=OLD_IMAGE)
        asset_store.fail_deletes = True

        updated = catalog.update_product(caller_for(seller), pid, {}, image)

        assert updated.image_url == asset_store.uploads[0].url


class TestDeleteProduct:
    """Test delete_product."""

    def test_delete_cascades_reports_and_adjusts_owner_counter(
        self, catalog, asset_store, session_factory, fetch, make_user, make_product, caller_for
    ):
        seller = make_user()
        reporter = make_user()
        pid = make_product(seller, image_url=OLD_IMAGE, report_count=1)
        with session_factory() as db:
            db.add(Report(user_id=reporter, product_id=pid, reason="spam"))
            db.query(User).filter(User.id == seller).update({User.report_count: 1})
            db.commit()

        catalog.delete_product(caller_for(seller), pid)

        assert fetch(Product, pid) is None
        with session_factory() as db:
            assert db.query(Report).count() == 0
        assert fetch(User, seller).report_count == 0
        assert asset_store.deleted == ["products/old_desk"]

    def test_reported_product_can_be_deleted(self, catalog, fetch, make_user, make_product, caller_for):
        seller = make_user()
        pid = make_product(seller, is_reported=True)
        catalog.delete_product(caller_for(seller), pid)
        assert fetch(Product, pid) is None

    def test_other_owner_gets_not_found(self, catalog, fetch, make_user, make_product, caller_for):
        pid = make_product(make_user())
        with pytest.raises(EntityNotFoundException):
            catalog.delete_product(caller_for(make_user()), pid)
        assert fetch(Product, pid) is not None

    def test_blob_delete_failure_does_not_block_removal(
        self, catalog, asset_store, fetch, make_user, make_product, caller_for
    ):
        seller = make_user()
        pid = make_product(seller, image_url=OLD_IMAGE)
        asset_store.fail_deletes = True

        catalog.delete_product(caller_for(seller), pid)

        assert fetch(Product, pid) is None
        assert asset_store.deleted == []


class TestMarkSold:
    """Test mark_sold."""

    def test_idempotent(self, catalog, make_user, make_product, caller_for):
        seller = make_user()
        pid = make_product(seller)

        first = catalog.mark_sold(caller_for(seller), pid)
        second = catalog.mark_sold(caller_for(seller), pid)

        assert first.is_sold is True
        assert second.is_sold is True

    def test_other_owner_gets_not_found(self, catalog, make_user, make_product, caller_for):
        pid = make_product(make_user())
        with pytest.raises(EntityNotFoundException):
            catalog.mark_sold(caller_for(make_user()), pid)

    def test_reported_product_is_locked(self, catalog, make_user, make_product, caller_for):
        seller = make_user()
        pid = make_product(seller, is_reported=True)
        with pytest.raises(EntityNotFoundException):
            catalog.mark_sold(caller_for(seller), pid)
