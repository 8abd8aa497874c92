import csv
import io
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload, selectinload

from boutique.core.clock import business_today, business_zone, local_day_range_utc, to_local
from boutique.core.errors import ValidationError
from boutique.models.catalog import Product
from boutique.models.sales import Sale, SaleItem
from boutique.services import stock_ledger

TOP_PRODUCTS_HEADER = ["Code", "Produit", "Quantité vendue", "Montant total"]


@dataclass(frozen=True)
class DayBucket:
    day: date
    revenue: int
    sale_count: int


@dataclass(frozen=True)
class ProductRanking:
    product_id: int
    code: str
    name: str
    quantity: int
    revenue: int


@dataclass(frozen=True)
class SalesReport:
    date_from: date
    date_to: date
    total_revenue: int
    sale_count: int
    average_sale: int
    by_day: list[DayBucket] = field(default_factory=list)
    top_products: list[ProductRanking] = field(default_factory=list)


@dataclass(frozen=True)
class DashboardSummary:
    day: date
    revenue_today: int
    sales_today: int
    active_products: int
    low_stock_count: int
    recent_sales: list[Sale] = field(default_factory=list)


def average_amount(total: int, count: int) -> int:
    if count == 0:
        return 0
    return int((Decimal(total) / Decimal(count)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _sales_between(db: Session, date_from: date, date_to: date, tz: ZoneInfo) -> list[Sale]:
    start, end = local_day_range_utc(date_from, date_to, tz)
    return list(
        db.scalars(
            select(Sale)
            .options(selectinload(Sale.items).joinedload(SaleItem.product))
            .where(Sale.sold_at >= start, Sale.sold_at < end)
            .order_by(Sale.sold_at.asc(), Sale.id.asc())
        ).unique()
    )


def build_sales_report(
    db: Session,
    date_from: date,
    date_to: date,
    tz: ZoneInfo | None = None,
    top_limit: int | None = 10,
) -> SalesReport:
    """Totals, per-day buckets and product ranking for sales in ``[date_from, date_to]``.

    Days are calendar days in ``tz`` (the shop's timezone by default). Products
    are ranked by revenue, highest first, ties broken by product code.
    """
    if date_from > date_to:
        raise ValidationError("Start date must not be after end date")
    tz = tz or business_zone()
    sales = _sales_between(db, date_from, date_to, tz)

    total_revenue = sum(sale.total_amount for sale in sales)
    days: dict[date, list[int]] = defaultdict(lambda: [0, 0])
    products: dict[int, dict] = {}
    for sale in sales:
        bucket = days[to_local(sale.sold_at, tz).date()]
        bucket[0] += sale.total_amount
        bucket[1] += 1
        for item in sale.items:
            ranking = products.setdefault(
                item.product_id,
                {"code": item.product.code, "name": item.product.name, "quantity": 0, "revenue": 0},
            )
            ranking["quantity"] += item.quantity
            ranking["revenue"] += item.line_total

    ranked = sorted(
        (ProductRanking(product_id=product_id, **values) for product_id, values in products.items()),
        key=lambda r: (-r.revenue, r.code),
    )
    if top_limit is not None:
        ranked = ranked[:top_limit]

    return SalesReport(
        date_from=date_from,
        date_to=date_to,
        total_revenue=total_revenue,
        sale_count=len(sales),
        average_sale=average_amount(total_revenue, len(sales)),
        by_day=[DayBucket(day=day, revenue=r, sale_count=c) for day, (r, c) in sorted(days.items())],
        top_products=ranked,
    )


def top_products_csv(report: SalesReport) -> str:
    sio = io.StringIO()
    writer = csv.writer(sio, lineterminator="\n")
    writer.writerow(TOP_PRODUCTS_HEADER)
    for ranking in report.top_products:
        writer.writerow([ranking.code, ranking.name, ranking.quantity, ranking.revenue])
    return sio.getvalue()


def dashboard_summary(db: Session, tz: ZoneInfo | None = None, recent_limit: int = 5) -> DashboardSummary:
    tz = tz or business_zone()
    today = business_today(tz)
    start, end = local_day_range_utc(today, today, tz)
    revenue, count = db.execute(
        select(func.coalesce(func.sum(Sale.total_amount), 0), func.count(Sale.id)).where(
            Sale.sold_at >= start, Sale.sold_at < end
        )
    ).one()
    active_products = db.scalar(select(func.count(Product.id)).where(Product.is_active.is_(True))) or 0
    recent = db.scalars(
        select(Sale)
        .options(selectinload(Sale.items), joinedload(Sale.employee))
        .order_by(Sale.sold_at.desc(), Sale.id.desc())
        .limit(recent_limit)
    ).unique()
    return DashboardSummary(
        day=today,
        revenue_today=int(revenue or 0),
        sales_today=int(count or 0),
        active_products=int(active_products),
        low_stock_count=len(stock_ledger.low_stock_entries(db)),
        recent_sales=list(recent),
    )
