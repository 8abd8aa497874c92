"""Per-product, per-size stock quantities.

Functions here only stage changes on the session; callers own the
transaction (see ``boutique.db.database.atomic``).
"""

import logging
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from boutique.core.config import settings
from boutique.core.errors import ValidationError
from boutique.models.catalog import Product, Size, StockEntry

logger = logging.getLogger(__name__)


class StockStatus(str, Enum):
    OUT = "out"
    LOW = "low"
    OK = "ok"


def stock_status(total: int, threshold: int | None = None) -> StockStatus:
    limit = settings.default_alert_threshold if threshold is None else threshold
    if total <= 0:
        return StockStatus.OUT
    if total <= limit:
        return StockStatus.LOW
    return StockStatus.OK


def get_entry(db: Session, product_id: int, size: Size, *, for_update: bool = False) -> StockEntry | None:
    query = select(StockEntry).where(StockEntry.product_id == product_id, StockEntry.size == size)
    if for_update:
        query = query.with_for_update()
    return db.scalar(query)


def adjust_quantity(db: Session, product_id: int, size: Size, delta: int) -> StockEntry:
    entry = get_entry(db, product_id, size, for_update=True)
    if entry is None:
        raise ValidationError(f"No stock entry for product {product_id} in size {size.value}")
    quantity_after = entry.quantity_current + delta
    if quantity_after < 0:
        raise ValidationError(
            f"Insufficient stock for product {product_id} in size {size.value}: "
            f"{entry.quantity_current} available, {-delta} requested"
        )
    entry.quantity_current = quantity_after
    logger.debug("Stock %s/%s adjusted by %+d to %d", product_id, size.value, delta, quantity_after)
    return entry


def set_current_quantity(db: Session, product_id: int, size: Size, quantity: int) -> StockEntry:
    if quantity < 0:
        raise ValidationError("Stock quantity cannot be negative")
    entry = get_entry(db, product_id, size, for_update=True)
    if entry is None:
        raise ValidationError(f"No stock entry for product {product_id} in size {size.value}")
    entry.quantity_current = quantity
    return entry


def set_initial_quantity(db: Session, product_id: int, size: Size, quantity: int) -> StockEntry:
    if quantity < 0:
        raise ValidationError("Stock quantity cannot be negative")
    entry = get_entry(db, product_id, size, for_update=True)
    if entry is None:
        entry = StockEntry(
            product_id=product_id,
            size=size,
            quantity_initial=quantity,
            quantity_current=quantity,
            alert_threshold=settings.default_alert_threshold,
        )
        db.add(entry)
        db.flush()
    else:
        entry.quantity_initial = quantity
        entry.quantity_current = quantity
    return entry


def total_stock(db: Session, product_id: int) -> int:
    total = db.scalar(
        select(func.coalesce(func.sum(StockEntry.quantity_current), 0)).where(StockEntry.product_id == product_id)
    )
    return int(total or 0)


def list_entries(db: Session, product_id: int | None = None) -> list[StockEntry]:
    query = select(StockEntry).options(joinedload(StockEntry.product)).order_by(StockEntry.product_id, StockEntry.id)
    if product_id is not None:
        query = query.where(StockEntry.product_id == product_id)
    return list(db.scalars(query).all())


def low_stock_entries(db: Session) -> list[StockEntry]:
    query = (
        select(StockEntry)
        .join(Product, Product.id == StockEntry.product_id)
        .options(joinedload(StockEntry.product))
        .where(Product.is_active.is_(True), StockEntry.quantity_current <= StockEntry.alert_threshold)
        .order_by(StockEntry.quantity_current.asc(), StockEntry.id.asc())
    )
    return list(db.scalars(query).all())
