from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from boutique.models.catalog import Size
from boutique.services.stock_ledger import StockStatus


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=500)


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=500)


class CategoryOut(BaseModel):
    id: int
    name: str
    description: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ProductWrite(BaseModel):
    """Full product payload; on update every field and every size is replaced."""

    code: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=160)
    unit_price: int = Field(ge=0)
    description: str | None = None
    category_id: int | None = None
    image_url: str | None = Field(default=None, max_length=500)
    stock: dict[Size, int] = Field(default_factory=dict, description="Quantity per size")

    @field_validator("stock")
    @classmethod
    def reject_negative_stock(cls, value: dict[Size, int]) -> dict[Size, int]:
        if any(quantity < 0 for quantity in value.values()):
            raise ValueError("stock quantities must not be negative")
        return value


class StockEntryOut(BaseModel):
    id: int
    product_id: int
    size: Size
    quantity_initial: int
    quantity_current: int
    alert_threshold: int
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProductOut(BaseModel):
    id: int
    code: str
    name: str
    description: str | None
    unit_price: int
    category_id: int | None
    category_name: str | None = None
    image_url: str | None
    is_active: bool
    stock: list[StockEntryOut]
    total_stock: int
    stock_status: StockStatus
    created_at: datetime
    updated_at: datetime


class StockAdjustRequest(BaseModel):
    product_id: int
    size: Size
    quantity_delta: int = Field(description="Signed delta to apply, may be negative")
    reason: str | None = Field(default=None, max_length=255)

    @field_validator("quantity_delta")
    @classmethod
    def reject_zero_delta(cls, value: int) -> int:
        if value == 0:
            raise ValueError("quantity_delta must not be zero")
        return value


class StockAlertOut(BaseModel):
    stock_id: int
    product_id: int
    product_code: str
    product_name: str
    size: Size
    quantity_current: int
    alert_threshold: int
    status: StockStatus
