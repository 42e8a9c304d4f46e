"""
SQLAlchemy Implementation of the Report Repository (moderation ledger).

Counters move with arithmetic UPDATEs (`count = count + 1`) so concurrent
reports never lose an increment, and every flag change happens in the same
statement as its counter change.
"""

from typing import List, Optional, Tuple

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_market.core.exceptions import ConflictException
from campus_market.domain.models.product import Product
from campus_market.domain.models.report import Report
from campus_market.domain.models.user import User
from campus_market.domain.repositories.report_repository import ReportRepository

PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True for PostgreSQL (23505) and SQLite UNIQUE constraint failures."""
    orig = exc.orig
    if getattr(orig, "pgcode", None) == PG_UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(orig)


class SQLAlchemyReportRepository(ReportRepository):
    """Report repository implementation using SQLAlchemy."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, reporter_id: int, product_id: int, reason: Optional[str]) -> Report:
        report = Report(user_id=reporter_id, product_id=product_id, reason=reason)
        self.db.add(report)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            if is_unique_violation(exc):
                raise ConflictException(
                    "You have already reported this product",
                    details={"reason": "DuplicateReport"},
                ) from exc
            raise
        return report

    def get_by_id(self, report_id: int) -> Optional[Report]:
        return self.db.get(Report, report_id)

    def remove(self, report: Report) -> None:
        self.db.delete(report)
        self.db.flush()

    def list_for_product(self, product_id: int) -> List[Tuple[Report, User]]:
        return (
            self.db.query(Report, User)
            .join(User, Report.user_id == User.id)
            .filter(Report.product_id == product_id)
            .order_by(Report.created_at.desc(), Report.id.desc())
            .all()
        )

    def list_by_reporter(self, reporter_id: int) -> List[Report]:
        return self.db.query(Report).filter(Report.user_id == reporter_id).all()

    def escalate(self, product_id: int, owner_id: int, product_threshold: int, user_threshold: int) -> None:
        self.db.query(Product).filter(Product.id == product_id).update(
            {
                Product.report_count: Product.report_count + 1,
                Product.is_reported: case(
                    (Product.report_count + 1 >= product_threshold, True),
                    else_=Product.is_reported,
                ),
            },
            synchronize_session=False,
        )
        self.db.query(User).filter(User.id == owner_id).update(
            {
                User.report_count: User.report_count + 1,
                User.is_reported: case(
                    (User.report_count + 1 >= user_threshold, True),
                    else_=User.is_reported,
                ),
            },
            synchronize_session=False,
        )

    def de_escalate(self, product_id: int, owner_id: int, product_threshold: int, user_threshold: int) -> None:
        self.db.query(Product).filter(Product.id == product_id).update(
            {
                Product.report_count: Product.report_count - 1,
                Product.is_reported: case(
                    (Product.report_count - 1 >= product_threshold, True),
                    else_=False,
                ),
            },
            synchronize_session=False,
        )
        self.db.query(User).filter(User.id == owner_id).update(
            {
                User.report_count: User.report_count - 1,
                User.is_reported: case(
                    (User.report_count - 1 >= user_threshold, True),
                    else_=False,
                ),
            },
            synchronize_session=False,
        )

    def release(self, product_id: int, owner_id: int) -> None:
        self.db.query(Product).filter(Product.id == product_id).update(
            {Product.report_count: Product.report_count - 1},
            synchronize_session=False,
        )
        self.db.query(User).filter(User.id == owner_id).update(
            {User.report_count: User.report_count - 1},
            synchronize_session=False,
        )
