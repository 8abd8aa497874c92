import csv
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload, selectinload

from boutique.core.clock import business_today, business_zone, local_day_start_utc, to_local
from boutique.core.errors import NotFoundError, UserError, ValidationError
from boutique.db.database import atomic
from boutique.models.activity import ActivityType
from boutique.models.catalog import Product, Size
from boutique.models.sales import PAYMENT_MODE_LABELS, PaymentMode, Sale, SaleItem
from boutique.models.user import Profile, User
from boutique.services import stock_ledger, work_plan
from boutique.services.activity_log import record_activity

logger = logging.getLogger(__name__)

SALES_EXPORT_HEADER = ["Date", "Employé", "Produit", "Taille", "Quantité", "Prix unitaire", "Total", "Mode de paiement"]


@dataclass
class CartLine:
    product_id: int
    product_code: str
    product_name: str
    size: Size
    quantity: int
    unit_price: int
    available: int

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price


class Cart:
    """Ordered cart lines, checked against the stock seen when each line was added.

    Rejections raise ``UserError``; the cart is left unchanged.
    """

    def __init__(self) -> None:
        self.lines: list[CartLine] = []

    def __len__(self) -> int:
        return len(self.lines)

    @property
    def total(self) -> int:
        return sum(line.line_total for line in self.lines)

    def find(self, product_id: int, size: Size) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id and line.size == size:
                return line
        return None

    def add_line(self, product: Product, size: Size, quantity: int = 1) -> CartLine:
        if quantity <= 0:
            raise UserError("Quantity must be at least 1")
        if not product.is_active:
            raise UserError(f"{product.name} is no longer sold")
        entry = next((e for e in product.stock_entries if e.size == size), None)
        available = entry.quantity_current if entry is not None else 0
        if available <= 0:
            raise UserError(f"{product.name} is out of stock in size {size.value}")

        line = self.find(product.id, size)
        in_cart = line.quantity if line is not None else 0
        if in_cart + quantity > available:
            raise UserError(f"Only {available} of {product.name} in size {size.value} available")

        if line is None:
            line = CartLine(
                product_id=product.id,
                product_code=product.code,
                product_name=product.name,
                size=size,
                quantity=quantity,
                unit_price=product.unit_price,
                available=available,
            )
            self.lines.append(line)
        else:
            line.quantity += quantity
            line.available = available
        return line

    def update_quantity(self, product_id: int, size: Size, delta: int) -> CartLine | None:
        line = self.find(product_id, size)
        if line is None:
            raise UserError("Item is not in the cart")
        quantity = line.quantity + delta
        if quantity <= 0:
            self.lines.remove(line)
            return None
        if quantity > line.available:
            raise UserError(f"Only {line.available} of {line.product_name} in size {size.value} available")
        line.quantity = quantity
        return line

    def remove_line(self, product_id: int, size: Size) -> None:
        self.lines = [line for line in self.lines if not (line.product_id == product_id and line.size == size)]

    def clear(self) -> None:
        self.lines = []


def sellable_products(db: Session) -> list[Product]:
    products = db.scalars(
        select(Product)
        .options(selectinload(Product.stock_entries), joinedload(Product.category))
        .where(Product.is_active.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
    ).unique()
    return [product for product in products if any(e.quantity_current > 0 for e in product.stock_entries)]


def build_cart(db: Session, requested: Iterable[tuple[int, Size, int]]) -> Cart:
    cart = Cart()
    for product_id, size, quantity in requested:
        product = db.scalar(
            select(Product).options(selectinload(Product.stock_entries)).where(Product.id == product_id)
        )
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        cart.add_line(product, Size(size), quantity)
    return cart


def checkout(
    db: Session,
    cart: Cart,
    payment_mode: PaymentMode,
    actor: User | None = None,
    today: date | None = None,
    notes: str | None = None,
) -> Sale:
    """Persist the cart as one sale and take its quantities out of stock.

    Today's work plan is resolved (or seeded) first and linked to the sale.
    Each quantity is checked again against the locked stock row, so a cart
    that went stale since it was built aborts without writing anything.
    """
    if not cart.lines:
        raise ValidationError("Cart is empty")
    today = today or business_today()
    with atomic(db, work_plan.DUPLICATE_PLAN_MESSAGE):
        plan = work_plan.ensure_plan(db, today, actor)
        for line in cart.lines:
            stock_ledger.adjust_quantity(db, line.product_id, line.size, -line.quantity)
        sale = Sale(
            work_plan_id=plan.id,
            employee_id=actor.id if actor is not None else None,
            total_amount=cart.total,
            payment_mode=PaymentMode(payment_mode),
            notes=notes,
            items=[
                SaleItem(
                    product_id=line.product_id,
                    size=line.size,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
                for line in cart.lines
            ],
        )
        db.add(sale)
        db.flush()
        record_activity(
            db,
            actor,
            ActivityType.SALE_CREATED,
            entity_type="sale",
            entity_id=sale.id,
            entity_name=f"Vente #{sale.id}",
            details={"total": sale.total_amount, "items": len(cart.lines), "payment_mode": sale.payment_mode.value},
        )
    logger.info("Sale %s recorded: %d line(s), total %d", sale.id, len(cart.lines), cart.total)
    return get_sale(db, sale.id)


def _sale_query():
    return select(Sale).options(
        selectinload(Sale.items).joinedload(SaleItem.product),
        joinedload(Sale.employee),
    )


def get_sale(db: Session, sale_id: int) -> Sale:
    sale = db.scalar(_sale_query().where(Sale.id == sale_id))
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def _matching(search: str):
    pattern = f"%{search.strip().lower()}%"
    item_match = (
        select(SaleItem.id)
        .join(Product, Product.id == SaleItem.product_id)
        .where(
            SaleItem.sale_id == Sale.id,
            or_(func.lower(Product.name).like(pattern), func.lower(Product.code).like(pattern)),
        )
        .exists()
    )
    seller_match = (
        select(Profile.id)
        .where(Profile.user_id == Sale.employee_id, func.lower(Profile.full_name).like(pattern))
        .exists()
    )
    return or_(item_match, seller_match)


def list_sales(
    db: Session,
    date_from: date | None = None,
    date_to: date | None = None,
    payment_mode: PaymentMode | None = None,
    tz_name: str | None = None,
    search: str | None = None,
) -> list[Sale]:
    """``search`` matches an item's product code or name, or the seller's name."""
    tz = business_zone(tz_name)
    query = _sale_query().order_by(Sale.sold_at.desc(), Sale.id.desc())
    if date_from is not None:
        query = query.where(Sale.sold_at >= local_day_start_utc(date_from, tz))
    if date_to is not None:
        query = query.where(Sale.sold_at < local_day_start_utc(date_to + timedelta(days=1), tz))
    if payment_mode is not None:
        query = query.where(Sale.payment_mode == payment_mode)
    if search and search.strip():
        query = query.where(_matching(search))
    return list(db.scalars(query).unique().all())


@dataclass(frozen=True)
class SalesTotals:
    revenue: int
    sale_count: int
    items_sold: int


def sales_totals(sales: Iterable[Sale]) -> SalesTotals:
    sales = list(sales)
    return SalesTotals(
        revenue=sum(sale.total_amount for sale in sales),
        sale_count=len(sales),
        items_sold=sum(item.quantity for sale in sales for item in sale.items),
    )


def sales_csv(sales: Iterable[Sale], tz: ZoneInfo | None = None) -> str:
    """One row per sold item, semicolon separated with a BOM so spreadsheets read it as UTF-8."""
    tz = tz or business_zone()
    sio = io.StringIO()
    writer = csv.writer(sio, delimiter=";", lineterminator="\n")
    writer.writerow(SALES_EXPORT_HEADER)
    for sale in sales:
        sold_at = to_local(sale.sold_at, tz).strftime("%d/%m/%Y %H:%M")
        seller = sale.employee.display_name if sale.employee is not None else ""
        payment = PAYMENT_MODE_LABELS.get(sale.payment_mode, sale.payment_mode.value)
        for item in sale.items:
            writer.writerow(
                [
                    sold_at,
                    seller,
                    f"{item.product.code} - {item.product.name}",
                    item.size.value,
                    item.quantity,
                    item.unit_price,
                    item.line_total,
                    payment,
                ]
            )
    return "\ufeff" + sio.getvalue()
