from datetime import date, datetime

from pydantic import BaseModel, Field

from boutique.models.catalog import Size
from boutique.models.sales import PaymentMode


class WorkPlanLineOut(BaseModel):
    id: int
    product_id: int
    product_code: str
    product_name: str
    size: Size
    quantity_initial: int
    quantity_sold: int
    quantity_remaining: int
    unit_price: int
    line_total: int


class WorkPlanOut(BaseModel):
    id: int
    work_date: date
    closed: bool
    employee_id: int | None
    notes: str | None
    lines: list[WorkPlanLineOut]
    total_units_sold: int
    total_amount: int
    created_at: datetime


class LineSoldUpdate(BaseModel):
    quantity_sold: int = Field(ge=0)


class LineEdit(BaseModel):
    line_id: int
    quantity_sold: int = Field(ge=0)


class LineEditBatch(BaseModel):
    lines: list[LineEdit] = Field(min_length=1)


class ClosePlanRequest(BaseModel):
    lines: list[LineEdit] = Field(default_factory=list, description="Unsaved edits applied before closing")


class SaleItemOut(BaseModel):
    id: int
    product_id: int
    product_code: str
    product_name: str
    size: Size
    quantity: int
    unit_price: int
    line_total: int


class SaleOut(BaseModel):
    id: int
    sold_at: datetime
    total_amount: int
    payment_mode: PaymentMode
    work_plan_id: int | None
    employee_id: int | None
    seller_name: str | None
    notes: str | None
    items: list[SaleItemOut]


class ClosePlanResponse(BaseModel):
    plan: WorkPlanOut
    sale: SaleOut | None


class CartLineIn(BaseModel):
    product_id: int
    size: Size
    quantity: int = Field(default=1, ge=1)


class CheckoutRequest(BaseModel):
    lines: list[CartLineIn] = Field(default_factory=list)
    payment_mode: PaymentMode = PaymentMode.CASH
    notes: str | None = Field(default=None, max_length=255)


class PosSizeOut(BaseModel):
    size: Size
    available: int


class PosProductOut(BaseModel):
    id: int
    code: str
    name: str
    unit_price: int
    image_url: str | None
    category_name: str | None
    sizes: list[PosSizeOut]


class SalesTotalsOut(BaseModel):
    currency: str
    revenue: int
    sale_count: int
    items_sold: int
