"""
Report Repository Interface.
The moderation ledger: report rows plus the denormalized counters they drive.
"""

from typing import List, Optional, Protocol, Tuple

from campus_market.domain.models.report import Report
from campus_market.domain.models.user import User


class ReportRepository(Protocol):
    """Interface for report insert/delete and counter maintenance."""

    def add(self, reporter_id: int, product_id: int, reason: Optional[str]) -> Report:
        """Insert a report. Raises ConflictException on a duplicate (user, product) pair."""
        ...

    def get_by_id(self, report_id: int) -> Optional[Report]:
        ...

    def remove(self, report: Report) -> None:
        ...

    def list_for_product(self, product_id: int) -> List[Tuple[Report, User]]:
        """Reports of a product with their reporters, newest first."""
        ...

    def list_by_reporter(self, reporter_id: int) -> List[Report]:
        ...

    def escalate(self, product_id: int, owner_id: int, product_threshold: int, user_threshold: int) -> None:
        """Increment both counters; raise flags that reach their threshold."""
        ...

    def de_escalate(self, product_id: int, owner_id: int, product_threshold: int, user_threshold: int) -> None:
        """Decrement both counters; re-evaluate both flags against their threshold."""
        ...

    def release(self, product_id: int, owner_id: int) -> None:
        """Decrement both counters without touching flags."""
        ...
