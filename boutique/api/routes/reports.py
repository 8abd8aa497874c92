from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from boutique.api.deps import require_permission
from boutique.api.presenters import sale_out
from boutique.core.clock import business_today, business_zone
from boutique.core.config import settings
from boutique.db.database import get_db
from boutique.models.user import User
from boutique.schemas.reports import DashboardOut, DayBucketOut, ProductRankingOut, SalesReportOut
from boutique.services import reporting

router = APIRouter(prefix="/reports", tags=["Reports"])


def _range(date_from: date | None, date_to: date | None, tz) -> tuple[date, date]:
    """Missing bounds default to the first of the month through today."""
    date_to = date_to or business_today(tz)
    date_from = date_from or date_to.replace(day=1)
    return date_from, date_to


@router.get("/sales", response_model=SalesReportOut)
def sales_report(
    date_from: date | None = None,
    date_to: date | None = None,
    tz: str | None = Query(default=None, description="IANA timezone, defaults to the shop's"),
    top: int = Query(default=10, ge=1, le=100),
    _: User = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    zone = business_zone(tz)
    date_from, date_to = _range(date_from, date_to, zone)
    report = reporting.build_sales_report(db, date_from, date_to, zone, top_limit=top)
    return SalesReportOut(
        date_from=report.date_from,
        date_to=report.date_to,
        currency=settings.currency,
        total_revenue=report.total_revenue,
        sale_count=report.sale_count,
        average_sale=report.average_sale,
        by_day=[DayBucketOut.model_validate(bucket) for bucket in report.by_day],
        top_products=[ProductRankingOut.model_validate(ranking) for ranking in report.top_products],
    )


@router.get("/sales/export")
def export_sales_report(
    date_from: date | None = None,
    date_to: date | None = None,
    tz: str | None = None,
    top: int = Query(default=10, ge=1, le=100),
    _: User = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    zone = business_zone(tz)
    date_from, date_to = _range(date_from, date_to, zone)
    report = reporting.build_sales_report(db, date_from, date_to, zone, top_limit=top)
    filename = f"rapport_ventes_{date_from.isoformat()}_{date_to.isoformat()}.csv"
    return Response(
        content=reporting.top_products_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(
    _: User = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    summary = reporting.dashboard_summary(db)
    return DashboardOut(
        day=summary.day,
        currency=settings.currency,
        revenue_today=summary.revenue_today,
        sales_today=summary.sales_today,
        active_products=summary.active_products,
        low_stock_count=summary.low_stock_count,
        recent_sales=[sale_out(sale) for sale in summary.recent_sales],
    )
