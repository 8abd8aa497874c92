import logging
from collections.abc import Mapping
from dataclasses import dataclass

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session, joinedload, selectinload

from boutique.core.errors import ConflictError, NotFoundError, ValidationError
from boutique.db.database import atomic
from boutique.models.activity import ActivityType
from boutique.models.catalog import Category, Product, Size, StockEntry
from boutique.models.user import User
from boutique.services import stock_ledger
from boutique.services.activity_log import record_activity

logger = logging.getLogger(__name__)

DUPLICATE_CODE_MESSAGE = "Product code already exists"


@dataclass(frozen=True)
class ProductFields:
    code: str | None
    name: str | None
    unit_price: int | None
    description: str | None = None
    category_id: int | None = None
    image_url: str | None = None


def _validated(fields: ProductFields) -> ProductFields:
    code = (fields.code or "").strip().upper()
    name = (fields.name or "").strip()
    if not code or not name or fields.unit_price is None:
        raise ValidationError("Product code, name and price are required")
    if fields.unit_price < 0:
        raise ValidationError("Product price cannot be negative")
    return ProductFields(
        code=code,
        name=name,
        unit_price=int(fields.unit_price),
        description=(fields.description or "").strip() or None,
        category_id=fields.category_id,
        image_url=fields.image_url or None,
    )


def _ensure_code_available(db: Session, code: str, exclude_product_id: int | None = None) -> None:
    query = select(Product.id).where(Product.code == code, Product.is_active.is_(True))
    if exclude_product_id is not None:
        query = query.where(Product.id != exclude_product_id)
    if db.scalar(query) is not None:
        raise ConflictError(DUPLICATE_CODE_MESSAGE)


def _ensure_category(db: Session, category_id: int | None) -> None:
    if category_id is not None and db.get(Category, category_id) is None:
        raise NotFoundError("Category not found")


def _stock_quantities(stock_by_size: Mapping[Size, int]) -> dict[Size, int]:
    quantities = {Size(size): int(quantity) for size, quantity in stock_by_size.items()}
    if any(quantity < 0 for quantity in quantities.values()):
        raise ValidationError("Stock quantity cannot be negative")
    return quantities


def get_product(db: Session, product_id: int) -> Product:
    product = db.scalar(
        select(Product)
        .options(selectinload(Product.stock_entries), joinedload(Product.category))
        .where(Product.id == product_id)
    )
    if product is None:
        raise NotFoundError("Product not found")
    return product


def list_products(db: Session, search: str | None = None, *, active_only: bool = True) -> list[Product]:
    query = (
        select(Product)
        .options(selectinload(Product.stock_entries), joinedload(Product.category))
        .order_by(Product.created_at.desc(), Product.id.desc())
    )
    if active_only:
        query = query.where(Product.is_active.is_(True))
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.where(or_(func.lower(Product.name).like(pattern), func.lower(Product.code).like(pattern)))
    return list(db.scalars(query).unique().all())


def create_product(
    db: Session,
    fields: ProductFields,
    initial_stock: Mapping[Size, int],
    actor: User | None = None,
) -> Product:
    clean = _validated(fields)
    quantities = _stock_quantities(initial_stock)
    with atomic(db, DUPLICATE_CODE_MESSAGE):
        _ensure_category(db, clean.category_id)
        _ensure_code_available(db, clean.code)
        product = Product(
            code=clean.code,
            name=clean.name,
            unit_price=clean.unit_price,
            description=clean.description,
            category_id=clean.category_id,
            image_url=clean.image_url,
        )
        db.add(product)
        db.flush()
        for size in Size:
            quantity = quantities.get(size, 0)
            if quantity > 0:
                stock_ledger.set_initial_quantity(db, product.id, size, quantity)
        record_activity(
            db,
            actor,
            ActivityType.PRODUCT_CREATED,
            entity_type="product",
            entity_id=product.id,
            entity_name=product.name,
            details={"code": product.code, "stock": {size.value: qty for size, qty in quantities.items() if qty > 0}},
        )
    logger.info("Product %s (%s) created", product.id, product.code)
    return get_product(db, product.id)


def update_product(
    db: Session,
    product_id: int,
    fields: ProductFields,
    stock_by_size: Mapping[Size, int],
    actor: User | None = None,
) -> Product:
    """Replace every mutable field and reset stock for every registered size.

    Both initial and current quantities take the submitted value (0 when a
    stocked size is left out), so any quantity already sold since the last
    reset is discarded. Sizes never stocked only get an entry when submitted.
    """
    clean = _validated(fields)
    quantities = _stock_quantities(stock_by_size)
    with atomic(db, DUPLICATE_CODE_MESSAGE):
        product = db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        _ensure_category(db, clean.category_id)
        if product.is_active:
            _ensure_code_available(db, clean.code, exclude_product_id=product.id)
        product.code = clean.code
        product.name = clean.name
        product.unit_price = clean.unit_price
        product.description = clean.description
        product.category_id = clean.category_id
        product.image_url = clean.image_url
        stocked = {entry.size for entry in product.stock_entries}
        for size in Size:
            quantity = quantities.get(size, 0)
            if quantity > 0 or size in stocked:
                stock_ledger.set_initial_quantity(db, product.id, size, quantity)
        record_activity(
            db,
            actor,
            ActivityType.PRODUCT_UPDATED,
            entity_type="product",
            entity_id=product.id,
            entity_name=product.name,
            details={"code": product.code},
        )
    logger.info("Product %s updated, stock reset", product_id)
    return get_product(db, product_id)


def deactivate_product(db: Session, product_id: int, actor: User | None = None) -> Product:
    with atomic(db):
        product = db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        if product.is_active:
            product.is_active = False
            record_activity(
                db,
                actor,
                ActivityType.PRODUCT_DELETED,
                entity_type="product",
                entity_id=product.id,
                entity_name=product.name,
            )
            logger.info("Product %s deactivated", product_id)
    return get_product(db, product_id)


def list_categories(db: Session) -> list[Category]:
    return list(db.scalars(select(Category).order_by(Category.name.asc())).all())


def create_category(db: Session, name: str, description: str | None = None, actor: User | None = None) -> Category:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    with atomic(db):
        category = Category(name=name, description=(description or "").strip() or None)
        db.add(category)
        db.flush()
        record_activity(
            db,
            actor,
            ActivityType.CATEGORY_CREATED,
            entity_type="category",
            entity_id=category.id,
            entity_name=category.name,
        )
    db.refresh(category)
    return category


def update_category(
    db: Session,
    category_id: int,
    name: str | None = None,
    description: str | None = None,
    actor: User | None = None,
) -> Category:
    with atomic(db):
        category = db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        if name is not None:
            if not name.strip():
                raise ValidationError("Category name is required")
            category.name = name.strip()
        if description is not None:
            category.description = description.strip() or None
        record_activity(
            db,
            actor,
            ActivityType.CATEGORY_UPDATED,
            entity_type="category",
            entity_id=category.id,
            entity_name=category.name,
        )
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: int, actor: User | None = None) -> None:
    with atomic(db):
        category = db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        db.execute(update(Product).where(Product.category_id == category_id).values(category_id=None))
        record_activity(
            db,
            actor,
            ActivityType.CATEGORY_DELETED,
            entity_type="category",
            entity_id=category.id,
            entity_name=category.name,
        )
        db.delete(category)


def adjust_stock(
    db: Session,
    product_id: int,
    size: Size,
    delta: int,
    actor: User | None = None,
    reason: str | None = None,
) -> StockEntry:
    with atomic(db):
        product = db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        entry = stock_ledger.adjust_quantity(db, product_id, size, delta)
        record_activity(
            db,
            actor,
            ActivityType.STOCK_UPDATED,
            entity_type="product",
            entity_id=product.id,
            entity_name=product.name,
            details={"size": size.value, "delta": delta, "quantity": entry.quantity_current, "reason": reason},
        )
    db.refresh(entry)
    return entry
