"""Tests for catalog listing, detail, seller catalogs and categories."""

from decimal import Decimal

import pytest

from campus_market.core.exceptions import EntityNotFoundException, ForbiddenException, ValidationException
from campus_market.domain.schemas.product import ProductFilter


class TestListProducts:
    """Test list_products."""

    def test_moderation_gate_hides_reported_products_and_sellers(self, catalog, make_user, make_product):
        seller = make_user()
        flagged_seller = make_user(is_reported=True)
        visible = make_product(seller, title="Lamp")
        make_product(seller, title="Broken", is_reported=True)
        make_product(flagged_seller, title="Hidden chair")

        page = catalog.list_products(ProductFilter())

        assert [p.id for p in page.products] == [visible]
        assert page.pagination.total_items == 1

    def test_gate_applies_under_every_filter(self, catalog, make_user, make_product):
        seller = make_user()
        make_product(seller, title="Desk lamp", category="Lighting", is_reported=True)
        filters = ProductFilter(category="Lighting", search="lamp", min_price=1, max_price=100, exclude_sold=True)
        assert catalog.list_products(filters).products == []

    def test_pagination_metadata(self, catalog, make_user, make_product):
        seller = make_user()
        for i in range(5):
            make_product(seller, title=f"Item {i}")

        first = catalog.list_products(ProductFilter(page=1, limit=2))
        last = catalog.list_products(ProductFilter(page=3, limit=2))

        assert first.pagination.total_pages == 3
        assert first.pagination.has_next_page is True
        assert first.pagination.has_prev_page is False
        assert len(last.products) == 1
        assert last.pagination.has_next_page is False
        assert last.pagination.has_prev_page is True

    def test_pages_partition_the_result(self, catalog, make_user, make_product):
        seller = make_user()
        ids = {make_product(seller, title=f"Item {i}") for i in range(7)}

        seen = []
        for page in range(1, 4):
            seen += [p.id for p in catalog.list_products(ProductFilter(page=page, limit=3)).products]

        assert len(seen) == 7
        assert set(seen) == ids

    def test_empty_result_has_zero_pages(self, catalog):
        page = catalog.list_products(ProductFilter())
        assert page.pagination.total_pages == 0
        assert page.pagination.has_next_page is False

    def test_price_range_and_category(self, catalog, make_user, make_product):
        seller = make_user()
        make_product(seller, title="Cheap", price=Decimal("5.00"), category="Books")
        mid = make_product(seller, title="Mid", price=Decimal("25.00"), category="Books")
        make_product(seller, title="Other", price=Decimal("25.00"), category="Furniture")

        page = catalog.list_products(ProductFilter(category="Books", min_price=10, max_price=30))

        assert [p.id for p in page.products] == [mid]

    def test_search_is_case_insensitive_over_title_and_description(self, catalog, make_user, make_product):
        seller = make_user()
        by_title = make_product(seller, title="Wooden DESK")
        by_description = make_product(seller, title="Table", description="works as a desk too")
        make_product(seller, title="Chair", description="comfortable")

        page = catalog.list_products(ProductFilter(search="desk"))

        assert {p.id for p in page.products} == {by_title, by_description}

    def test_search_escapes_wildcards(self, catalog, make_user, make_product):
        seller = make_user()
        literal = make_product(seller, title="100% cotton shirt")
        make_product(seller, title="1000 piece puzzle")

        page = catalog.list_products(ProductFilter(search="100%"))

        assert [p.id for p in page.products] == [literal]

    def test_exclude_sold(self, catalog, make_user, make_product):
        seller = make_user()
        make_product(seller, title="Gone", is_sold=True)
        available = make_product(seller, title="Here")

        assert [p.id for p in catalog.list_products(ProductFilter(exclude_sold=True)).products] == [available]
        assert len(catalog.list_products(ProductFilter()).products) == 2

    def test_sort_by_price_ascending(self, catalog, make_user, make_product):
        seller = make_user()
        b = make_product(seller, price=Decimal("20.00"))
        a = make_product(seller, price=Decimal("10.00"))
        c = make_product(seller, price=Decimal("30.00"))

        page = catalog.list_products(ProductFilter(sort_by="price", sort_order="ASC"))

        assert [p.id for p in page.products] == [a, b, c]

    def test_unknown_sort_falls_back_to_newest_first(self, catalog, make_user, make_product):
        seller = make_user()
        first = make_product(seller)
        second = make_product(seller)

        filters = ProductFilter(sort_by="price; DROP TABLE products", sort_order="sideways")
        page = catalog.list_products(filters)

        assert filters.sort_by == "created_at"
        assert filters.sort_order == "desc"
        assert [p.id for p in page.products] == [second, first]

    def test_listing_carries_seller_summary(self, catalog, make_user, make_product):
        seller = make_user(name="Ama", hostel="Volta")
        make_product(seller)

        summary = catalog.list_products(ProductFilter()).products[0]

        assert summary.seller.name == "Ama"
        assert summary.seller.hostel == "Volta"

    def test_min_price_above_max_price(self, catalog):
        with pytest.raises(ValidationException):
            catalog.list_products(ProductFilter(min_price=50, max_price=10))

    def test_limit_above_maximum(self, catalog, settings):
        with pytest.raises(ValidationException):
            catalog.list_products(ProductFilter(limit=settings.MAX_PAGE_SIZE + 1))


class TestGetProductDetail:
    """Test get_product_detail."""

    def test_detail_with_related_products(self, catalog, make_user, make_product):
        seller = make_user()
        product = make_product(seller)
        others = [make_product(seller, title=f"Other {i}") for i in range(5)]
        make_product(seller, title="Sold", is_sold=True)
        make_product(seller, title="Flagged", is_reported=True)

        detail = catalog.get_product_detail(str(product))

        related = [r.id for r in detail.related_products]
        assert related == list(reversed(others))[:4]
        assert product not in related
        assert detail.seller.id == seller

    def test_non_numeric_id_is_not_found(self, catalog):
        with pytest.raises(EntityNotFoundException):
            catalog.get_product_detail("abc")

    @pytest.mark.parametrize("raw", ["²", "٣", "99999999999999999999999", 2**31, 0])
    def test_ids_outside_the_key_range_are_not_found(self, catalog, raw):
        with pytest.raises(EntityNotFoundException):
            catalog.get_product_detail(raw)

    def test_reported_product_is_not_found(self, catalog, make_user, make_product):
        product = make_product(make_user(), is_reported=True)
        with pytest.raises(EntityNotFoundException):
            catalog.get_product_detail(product)

    def test_product_of_reported_seller_is_not_found(self, catalog, make_user, make_product):
        product = make_product(make_user(is_reported=True))
        with pytest.raises(EntityNotFoundException):
            catalog.get_product_detail(product)


class TestSellerCatalog:
    """Test get_products_by_seller and get_my_products."""

    def test_includes_sold_by_default(self, catalog, make_user, make_product):
        seller = make_user()
        make_product(seller, is_sold=True)
        make_product(seller)
        make_product(seller, is_reported=True)

        result = catalog.get_products_by_seller(seller)

        assert result.total_products == 2
        assert result.seller.id == seller

    def test_exclude_sold(self, catalog, make_user, make_product):
        seller = make_user()
        make_product(seller, is_sold=True)
        available = make_product(seller)

        result = catalog.get_products_by_seller(seller, include_sold=False)

        assert [p.id for p in result.products] == [available]

    def test_unknown_seller(self, catalog):
        with pytest.raises(EntityNotFoundException):
            catalog.get_products_by_seller(999)

    def test_reported_seller_is_forbidden(self, catalog, make_user):
        with pytest.raises(ForbiddenException):
            catalog.get_products_by_seller(make_user(is_reported=True))

    def test_my_products(self, catalog, make_user, make_product, caller_for):
        seller = make_user()
        mine = make_product(seller)
        make_product(make_user())

        result = catalog.get_my_products(caller_for(seller))

        assert [p.id for p in result.products] == [mine]


class TestCategories:
    """Test get_categories."""

    def test_counts_only_visible_unsold(self, catalog, make_user, make_product):
        seller = make_user()
        flagged = make_user(is_reported=True)
        make_product(seller, category="Books")
        make_product(seller, category="Books")
        make_product(seller, category="Furniture")
        make_product(seller, category="Furniture", is_sold=True)
        make_product(seller, category="Furniture", is_reported=True)
        make_product(flagged, category="Furniture")

        counts = [(c.category, c.count) for c in catalog.get_categories()]

        assert counts == [("Books", 2), ("Furniture", 1)]
