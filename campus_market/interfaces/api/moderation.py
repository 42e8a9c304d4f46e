"""Moderation API routes — user reports and the admin review queue."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from campus_market.application.services.moderation_service import ModerationService
from campus_market.config import Settings
from campus_market.domain.schemas.auth import Caller
from campus_market.domain.schemas.report import ReportCreate
from campus_market.interfaces.api.deps import get_current_caller, require_admin
from campus_market.interfaces.api.envelope import ok
from campus_market.interfaces.deps import get_app_settings, get_moderation_service

router = APIRouter(prefix="/api", tags=["Moderation"])


@router.post("/{product_id}/report", status_code=status.HTTP_201_CREATED)
def report_product(
    product_id: str,
    body: Optional[ReportCreate] = Body(None),
    caller: Caller = Depends(get_current_caller),
    service: ModerationService = Depends(get_moderation_service),
):
    reason = body.reason if body is not None else None
    report = service.report_product(caller.id, product_id, reason)
    return ok(report, message="Product reported successfully")


@router.get("/admin/reports/products")
def reported_products(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    admin: Caller = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
    settings: Settings = Depends(get_app_settings),
):
    return ok(service.list_reported_products(page, limit or settings.DEFAULT_PAGE_SIZE))


@router.get("/admin/products/{product_id}/reports")
def product_reports(
    product_id: str,
    admin: Caller = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    return ok(service.list_reports_for_product(product_id))


@router.delete("/admin/reports/{report_id}")
def remove_report(
    report_id: str,
    admin: Caller = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    service.remove_report(report_id)
    return ok(message="Report removed successfully")
