from datetime import date

from pydantic import BaseModel

from boutique.schemas.sales import SaleOut


class DayBucketOut(BaseModel):
    day: date
    revenue: int
    sale_count: int

    model_config = {"from_attributes": True}


class ProductRankingOut(BaseModel):
    product_id: int
    code: str
    name: str
    quantity: int
    revenue: int

    model_config = {"from_attributes": True}


class SalesReportOut(BaseModel):
    date_from: date
    date_to: date
    currency: str
    total_revenue: int
    sale_count: int
    average_sale: int
    by_day: list[DayBucketOut]
    top_products: list[ProductRankingOut]


class DashboardOut(BaseModel):
    day: date
    currency: str
    revenue_today: int
    sales_today: int
    active_products: int
    low_stock_count: int
    recent_sales: list[SaleOut]
