"""Sales report aggregation and dashboard counters."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from boutique.core.errors import ValidationError
from boutique.models.catalog import Size
from boutique.models.sales import PaymentMode, Sale, SaleItem
from boutique.services import reporting

UTC = ZoneInfo("UTC")
PARIS = ZoneInfo("Europe/Paris")


@pytest.fixture
def record_sale(db):
    def _record(sold_at: datetime, *lines) -> Sale:
        sale = Sale(
            sold_at=sold_at,
            payment_mode=PaymentMode.CASH,
            total_amount=sum(quantity * price for _, quantity, price in lines),
            items=[
                SaleItem(product_id=product.id, size=Size.M, quantity=quantity, unit_price=price)
                for product, quantity, price in lines
            ],
        )
        db.add(sale)
        db.commit()
        return sale

    return _record


def test_totals_count_and_average(db, make_product, record_sale):
    product = make_product("P1", stock={Size.M: 10})
    for amount in (1000, 2000, 3000):
        record_sale(datetime(2024, 1, 10, 12, 0), (product, 1, amount))

    report = reporting.build_sales_report(db, date(2024, 1, 10), date(2024, 1, 10), UTC)

    assert report.total_revenue == 6000
    assert report.sale_count == 3
    assert report.average_sale == 2000


def test_empty_range_reports_zero_average(db):
    report = reporting.build_sales_report(db, date(2024, 1, 1), date(2024, 1, 31), UTC)

    assert (report.total_revenue, report.sale_count, report.average_sale) == (0, 0, 0)
    assert report.by_day == []
    assert report.top_products == []


def test_average_rounds_half_up():
    assert reporting.average_amount(2001, 2) == 1001
    assert reporting.average_amount(2000, 3) == 667


def test_range_bounds_and_day_buckets_use_local_days(db, make_product, record_sale):
    product = make_product("P1", stock={Size.M: 10})
    record_sale(datetime(2024, 1, 9, 22, 30), (product, 1, 100))  # 23:30 in Paris, Jan 9
    record_sale(datetime(2024, 1, 9, 23, 30), (product, 1, 200))  # 00:30 in Paris, Jan 10
    record_sale(datetime(2024, 1, 10, 10, 0), (product, 1, 400))
    record_sale(datetime(2024, 1, 11, 8, 0), (product, 1, 800))

    report = reporting.build_sales_report(db, date(2024, 1, 10), date(2024, 1, 11), PARIS)

    assert report.total_revenue == 1400
    assert [(b.day, b.revenue, b.sale_count) for b in report.by_day] == [
        (date(2024, 1, 10), 600, 2),
        (date(2024, 1, 11), 800, 1),
    ]


def test_products_ranked_by_revenue_then_code(db, make_product, record_sale):
    a = make_product("A1", stock={Size.M: 10})
    b = make_product("B1", stock={Size.M: 10})
    c = make_product("C1", stock={Size.M: 10})
    record_sale(datetime(2024, 1, 10, 9, 0), (b, 1, 500), (c, 3, 300))
    record_sale(datetime(2024, 1, 10, 10, 0), (a, 2, 250))

    report = reporting.build_sales_report(db, date(2024, 1, 10), date(2024, 1, 10), UTC)

    assert [(r.code, r.quantity, r.revenue) for r in report.top_products] == [
        ("C1", 3, 900),
        ("A1", 2, 500),
        ("B1", 1, 500),
    ]

    limited = reporting.build_sales_report(db, date(2024, 1, 10), date(2024, 1, 10), UTC, top_limit=1)
    assert [r.code for r in limited.top_products] == ["C1"]


def test_reversed_range_is_rejected(db):
    with pytest.raises(ValidationError):
        reporting.build_sales_report(db, date(2024, 1, 11), date(2024, 1, 10), UTC)


def test_top_products_csv(db, make_product, record_sale):
    product = make_product("RB-01", name="Robe, wax", stock={Size.M: 10})
    record_sale(datetime(2024, 1, 10, 9, 0), (product, 2, 150000))
    report = reporting.build_sales_report(db, date(2024, 1, 10), date(2024, 1, 10), UTC)

    lines = reporting.top_products_csv(report).splitlines()

    assert lines == ["Code,Produit,Quantité vendue,Montant total", 'RB-01,"Robe, wax",2,300000']


def test_dashboard_counts_today(db, make_product, record_sale, monkeypatch):
    product = make_product("P1", stock={Size.M: 10, Size.S: 1})
    make_product("P2", stock={Size.L: 20})
    record_sale(datetime(2024, 1, 10, 9, 0), (product, 1, 1000))
    record_sale(datetime(2024, 1, 10, 15, 0), (product, 2, 1500))
    record_sale(datetime(2024, 1, 9, 15, 0), (product, 1, 9999))
    monkeypatch.setattr(reporting, "business_today", lambda tz=None: date(2024, 1, 10))

    summary = reporting.dashboard_summary(db, UTC)

    assert summary.revenue_today == 4000
    assert summary.sales_today == 2
    assert summary.active_products == 2
    assert summary.low_stock_count == 1
    assert [sale.total_amount for sale in summary.recent_sales] == [3000, 1000, 9999]
