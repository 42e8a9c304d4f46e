"""
Product Repository Interface.
Defines catalog data access: visibility-gated reads and ownership-scoped writes.
"""

from typing import Any, Dict, List, Optional, Tuple

from campus_market.domain.models.product import Product
from campus_market.domain.repositories.base import BaseRepository
from campus_market.domain.schemas.product import ProductFilter


class ProductRepository(BaseRepository[Product]):
    """Interface for Product-specific operations."""

    def list_visible(self, filters: ProductFilter) -> Tuple[List[Product], int]:
        """Page of visible products (seller loaded) and the total under the same predicate."""
        ...

    def get_visible(self, product_id: int) -> Optional[Product]:
        """Get a product passing the moderation gate, with its seller."""
        ...

    def get_related(self, product: Product, limit: int = 4) -> List[Product]:
        """Other unsold, non-reported listings of the same seller, newest first."""
        ...

    def list_by_seller(self, seller_id: int, include_sold: bool = True) -> List[Product]:
        """Non-reported products of a seller, newest first."""
        ...

    def get_category_counts(self) -> List[Dict[str, Any]]:
        """Category counts over unsold visible products, largest first."""
        ...

    def get_owned(self, product_id: int, owner_id: int, include_reported: bool = False) -> Optional[Product]:
        """Ownership (and, unless include_reported, moderation) gated lookup."""
        ...

    def update_owned(self, product_id: int, owner_id: int, values: Dict[str, Any]) -> int:
        """Write `values` to an owned, non-reported product. Returns matched rows."""
        ...

    def delete_owned(self, product: Product) -> None:
        """Delete a product, its reports, and release its share of the owner's report counter."""
        ...

    def list_reported(self, page: int, limit: int) -> Tuple[List[Product], int]:
        """Products with at least one report, most reported first."""
        ...
