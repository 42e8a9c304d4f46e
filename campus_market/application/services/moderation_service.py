"""Moderation ledger — reports, counters and the threshold policy.

Policy (all within the report insert/delete transaction):

- a new report increments the product's and the owner's report_count and
  raises `is_reported` on whichever reaches its configured threshold;
- an administrative report removal decrements both counters and re-evaluates
  both flags as `report_count >= threshold`;
- reports withdrawn by account or product deletion only release counters.
"""

from dataclasses import dataclass
from typing import Optional, Union

import structlog
from sqlalchemy.orm import Session, sessionmaker

from campus_market.application.services.catalog_service import parse_id
from campus_market.config import Settings
from campus_market.core.exceptions import EntityNotFoundException, ValidationException
from campus_market.domain.models.product import Product
from campus_market.domain.schemas.product import Pagination
from campus_market.domain.schemas.report import (
    ProductReport,
    ProductReports,
    ReportedProduct,
    ReportedProductPage,
    ReportRead,
)
from campus_market.infrastructure.repositories.product_repository import SQLAlchemyProductRepository
from campus_market.infrastructure.repositories.report_repository import SQLAlchemyReportRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ModerationPolicy:
    product_threshold: int
    user_threshold: int

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModerationPolicy":
        return cls(
            product_threshold=settings.PRODUCT_REPORT_THRESHOLD,
            user_threshold=settings.USER_REPORT_THRESHOLD,
        )


class ModerationService:
    def __init__(self, session_factory: sessionmaker[Session], settings: Settings):
        self.session_factory = session_factory
        self.settings = settings
        self.policy = ModerationPolicy.from_settings(settings)

    def report_product(
        self,
        reporter_id: int,
        product_id: Union[int, str],
        reason: Optional[str] = None,
    ) -> ReportRead:
        pid = parse_id(product_id)
        if pid is None:
            raise EntityNotFoundException("Product not found or already reported")

        with self.session_factory() as db:
            product = SQLAlchemyProductRepository(db).get_by_id(pid)
            if product is None or product.is_reported:
                raise EntityNotFoundException("Product not found or already reported")
            if product.user_id == reporter_id:
                raise ValidationException(
                    "You cannot report your own product",
                    details={"reason": "SelfReport"},
                )

            reports = SQLAlchemyReportRepository(db)
            report = reports.add(reporter_id, pid, reason or None)
            reports.escalate(pid, product.user_id, self.policy.product_threshold, self.policy.user_threshold)
            db.commit()
            created = ReportRead.model_validate(report)

        logger.info("Product reported", product_id=pid, reporter_id=reporter_id, report_id=created.id)
        return created

    def list_reports_for_product(self, product_id: Union[int, str]) -> ProductReports:
        pid = parse_id(product_id)
        if pid is None:
            raise EntityNotFoundException("Product not found")

        with self.session_factory() as db:
            rows = SQLAlchemyReportRepository(db).list_for_product(pid)
            reports = [
                ProductReport(
                    id=report.id,
                    reason=report.reason,
                    created_at=report.created_at,
                    reporter_id=reporter.id,
                    reporter_name=reporter.name,
                    reporter_email=reporter.email,
                )
                for report, reporter in rows
            ]

        return ProductReports(product_id=pid, total_reports=len(reports), reports=reports)

    def list_reported_products(self, page: int = 1, limit: int = 20) -> ReportedProductPage:
        if page < 1 or limit < 1 or limit > self.settings.MAX_PAGE_SIZE:
            raise ValidationException("Invalid pagination parameters")

        with self.session_factory() as db:
            products, total = SQLAlchemyProductRepository(db).list_reported(page, limit)
            items = [
                ReportedProduct(
                    id=p.id,
                    title=p.title,
                    description=p.description,
                    price=p.price,
                    category=p.category,
                    image_url=p.image_url,
                    is_reported=p.is_reported,
                    report_count=p.report_count,
                    created_at=p.created_at,
                    seller_id=p.owner.id,
                    seller_name=p.owner.name,
                    seller_email=p.owner.email,
                )
                for p in products
            ]

        return ReportedProductPage(products=items, pagination=Pagination.build(page, limit, total))

    def remove_report(self, report_id: Union[int, str]) -> None:
        rid = parse_id(report_id)
        if rid is None:
            raise EntityNotFoundException("Report not found")

        with self.session_factory() as db:
            reports = SQLAlchemyReportRepository(db)
            report = reports.get_by_id(rid)
            if report is None:
                raise EntityNotFoundException("Report not found")

            product = db.get(Product, report.product_id)
            product_id, owner_id = product.id, product.user_id
            reports.remove(report)
            reports.de_escalate(product_id, owner_id, self.policy.product_threshold, self.policy.user_threshold)
            db.commit()

        logger.info("Report removed", report_id=rid, product_id=product_id)
