"""
SQLAlchemy Implementation of Product Repository.

Dynamic listing filters are drawn from a fixed clause table and sort
identifiers from an allow-list map; caller input only ever reaches SQL as a
bound parameter.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Query, Session, contains_eager

from campus_market.domain.models.product import Product
from campus_market.domain.models.report import Report
from campus_market.domain.models.user import User
from campus_market.domain.repositories.product_repository import ProductRepository
from campus_market.domain.schemas.product import ProductFilter
from campus_market.infrastructure.repositories.base_repository import SQLAlchemyRepository


def _search_clause(text: str):
    needle = text.lower()
    return or_(
        func.lower(Product.title).contains(needle, autoescape=True),
        func.lower(Product.description).contains(needle, autoescape=True),
    )


FILTER_CLAUSES: Dict[str, Callable[[Any], Any]] = {
    "category": lambda value: Product.category == value,
    "min_price": lambda value: Product.price >= value,
    "max_price": lambda value: Product.price <= value,
    "condition": lambda value: Product.condition == value,
    "search": _search_clause,
    "exclude_sold": lambda value: Product.is_sold.is_(False),
}

SORT_COLUMNS = {
    "created_at": Product.created_at,
    "price": Product.price,
    "title": Product.title,
}


def visibility_clauses() -> list:
    """The moderation gate: product and seller both unreported."""
    return [Product.is_reported.is_(False), User.is_reported.is_(False)]


def build_listing_predicate(filters: ProductFilter) -> list:
    clauses = visibility_clauses()
    for name, make_clause in FILTER_CLAUSES.items():
        value = getattr(filters, name)
        if value is None or value is False or value == "":
            continue
        clauses.append(make_clause(value))
    return clauses


def newest_first(query: Query) -> Query:
    return query.order_by(Product.created_at.desc(), Product.id.desc())


class SQLAlchemyProductRepository(SQLAlchemyRepository[Product], ProductRepository):
    """Product repository implementation using SQLAlchemy."""

    def __init__(self, db: Session):
        super().__init__(db, Product)

    def _with_seller(self) -> Query:
        return (
            self.db.query(Product)
            .join(User, Product.user_id == User.id)
            .options(contains_eager(Product.owner))
        )

    def list_visible(self, filters: ProductFilter) -> Tuple[List[Product], int]:
        """Get visible products with filtering, sorting and pagination."""
        predicate = build_listing_predicate(filters)

        total = (
            self.db.query(func.count(Product.id))
            .join(User, Product.user_id == User.id)
            .filter(*predicate)
            .scalar()
        ) or 0

        column = SORT_COLUMNS[filters.sort_by]
        if filters.sort_order == "asc":
            ordering = (column.asc(), Product.id.asc())
        else:
            ordering = (column.desc(), Product.id.desc())

        offset = (filters.page - 1) * filters.limit
        products = (
            self._with_seller()
            .filter(*predicate)
            .order_by(*ordering)
            .offset(offset)
            .limit(filters.limit)
            .all()
        )
        return products, total

    def get_visible(self, product_id: int) -> Optional[Product]:
        return self._with_seller().filter(Product.id == product_id, *visibility_clauses()).first()

    def get_related(self, product: Product, limit: int = 4) -> List[Product]:
        query = self.db.query(Product).filter(
            Product.user_id == product.user_id,
            Product.id != product.id,
            Product.is_sold.is_(False),
            Product.is_reported.is_(False),
        )
        return newest_first(query).limit(limit).all()

    def list_by_seller(self, seller_id: int, include_sold: bool = True) -> List[Product]:
        query = self.db.query(Product).filter(
            Product.user_id == seller_id,
            Product.is_reported.is_(False),
        )
        if not include_sold:
            query = query.filter(Product.is_sold.is_(False))
        return newest_first(query).all()

    def get_category_counts(self) -> List[Dict[str, Any]]:
        count = func.count(Product.id).label("count")
        results = (
            self.db.query(Product.category, count)
            .join(User, Product.user_id == User.id)
            .filter(Product.is_sold.is_(False), *visibility_clauses())
            .group_by(Product.category)
            .order_by(count.desc(), Product.category.asc())
            .all()
        )
        return [{"category": r.category, "count": r.count} for r in results]

    def get_owned(self, product_id: int, owner_id: int, include_reported: bool = False) -> Optional[Product]:
        query = self.db.query(Product).filter(Product.id == product_id, Product.user_id == owner_id)
        if not include_reported:
            query = query.filter(Product.is_reported.is_(False))
        return query.first()

    def update_owned(self, product_id: int, owner_id: int, values: Dict[str, Any]) -> int:
        return (
            self.db.query(Product)
            .filter(
                Product.id == product_id,
                Product.user_id == owner_id,
                Product.is_reported.is_(False),
            )
            .update({**values, "updated_at": func.now()}, synchronize_session=False)
        )

    def delete_owned(self, product: Product) -> None:
        live_reports = (
            select(func.count(Report.id))
            .where(Report.product_id == product.id)
            .scalar_subquery()
        )
        self.db.query(User).filter(User.id == product.user_id).update(
            {User.report_count: User.report_count - live_reports},
            synchronize_session=False,
        )
        self.db.query(Product).filter(Product.id == product.id).delete(synchronize_session=False)
        self.db.flush()

    def list_reported(self, page: int, limit: int) -> Tuple[List[Product], int]:
        query = self._with_seller().filter(Product.report_count > 0)
        total = self.db.query(func.count(Product.id)).filter(Product.report_count > 0).scalar() or 0
        products = (
            query.order_by(Product.report_count.desc(), Product.created_at.desc(), Product.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return products, total
