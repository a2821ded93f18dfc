"""
Dashboard insight endpoints over synced data
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopsync.api.auth import require_tenant
from shopsync.models.base import get_db
from shopsync.models.tenant import Tenant
from shopsync.services.insights_service import InsightsService

router = APIRouter(prefix="/api/insights", tags=["insights"])


def _service(tenant: Tenant = Depends(require_tenant), db: Session = Depends(get_db)) -> InsightsService:
    return InsightsService(db, tenant.id)


@router.get("/overview")
async def get_overview(service: InsightsService = Depends(_service)):
    return service.overview()


@router.get("/orders-by-date")
async def get_orders_by_date(
    startDate: Optional[date] = Query(None, description="YYYY-MM-DD"),
    endDate: Optional[date] = Query(None, description="YYYY-MM-DD"),
    service: InsightsService = Depends(_service),
):
    return service.orders_by_date(startDate, endDate)


@router.get("/top-customers")
async def get_top_customers(
    limit: int = Query(5, ge=1, le=100),
    service: InsightsService = Depends(_service),
):
    return service.top_customers(limit)


@router.get("/revenue-trend")
async def get_revenue_trend(
    period: str = Query("30d", description="7d, 30d or 90d"),
    service: InsightsService = Depends(_service),
):
    return service.revenue_trend(period)
