"""Daily work plan: a per-day snapshot of sellable stock reconciled into a sale.

A plan is Open until ``close_plan`` turns it Closed; there is no way back.
Every public operation here runs in a single transaction, so a line edit and
its stock write, or a close and its sale, either both land or neither does.
"""

import logging
from collections.abc import Mapping
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload, selectinload

from boutique.core.clock import business_today
from boutique.core.errors import ConflictError, NotFoundError, ValidationError
from boutique.db.database import atomic
from boutique.models.activity import ActivityType
from boutique.models.catalog import SIZE_ORDER, Product, StockEntry
from boutique.models.sales import PaymentMode, Sale, SaleItem, WorkPlan, WorkPlanLine
from boutique.models.user import User
from boutique.services import stock_ledger
from boutique.services.activity_log import record_activity

logger = logging.getLogger(__name__)

DUPLICATE_PLAN_MESSAGE = "A work plan already exists for this date, reload it"


def find_plan(db: Session, work_date: date) -> WorkPlan | None:
    return db.scalar(select(WorkPlan).where(WorkPlan.work_date == work_date))


def load_plan(db: Session, plan_id: int) -> WorkPlan:
    plan = db.scalar(
        select(WorkPlan)
        .options(selectinload(WorkPlan.lines).joinedload(WorkPlanLine.product))
        .where(WorkPlan.id == plan_id)
    )
    if plan is None:
        raise NotFoundError("Work plan not found")
    return plan


def sorted_lines(plan: WorkPlan) -> list[WorkPlanLine]:
    return sorted(plan.lines, key=lambda line: (line.product.code, SIZE_ORDER[line.size], line.id))


def seed_plan(db: Session, work_date: date, actor: User | None = None) -> WorkPlan:
    """Stage a new plan and its lines in the caller's transaction.

    One line per stock entry with quantity on hand, for active products only.
    A second plan for the same date fails on the unique ``work_date`` index.
    """
    plan = WorkPlan(work_date=work_date, employee_id=actor.id if actor is not None else None)
    db.add(plan)
    db.flush()

    entries = db.scalars(
        select(StockEntry)
        .join(Product, Product.id == StockEntry.product_id)
        .options(joinedload(StockEntry.product))
        .where(StockEntry.quantity_current > 0, Product.is_active.is_(True))
        .order_by(Product.code.asc(), StockEntry.id.asc())
    ).all()
    for entry in sorted(entries, key=lambda e: (e.product.code, SIZE_ORDER[e.size])):
        db.add(
            WorkPlanLine(
                work_plan_id=plan.id,
                product_id=entry.product_id,
                size=entry.size,
                quantity_initial=entry.quantity_current,
                quantity_sold=0,
                unit_price=entry.product.unit_price,
            )
        )
    db.flush()
    logger.info("Work plan %s seeded for %s with %d lines", plan.id, work_date, len(entries))
    return plan


def ensure_plan(db: Session, work_date: date, actor: User | None = None) -> WorkPlan:
    return find_plan(db, work_date) or seed_plan(db, work_date, actor)


def create_plan(db: Session, work_date: date, actor: User | None = None) -> WorkPlan:
    with atomic(db, DUPLICATE_PLAN_MESSAGE):
        plan = seed_plan(db, work_date, actor)
    return load_plan(db, plan.id)


def get_or_create_plan(db: Session, work_date: date, actor: User | None = None) -> WorkPlan:
    plan = find_plan(db, work_date)
    if plan is not None:
        return load_plan(db, plan.id)
    return create_plan(db, work_date, actor)


def _lock_plan(db: Session, plan_id: int) -> WorkPlan:
    plan = db.scalar(select(WorkPlan).where(WorkPlan.id == plan_id).with_for_update())
    if plan is None:
        raise NotFoundError("Work plan not found")
    return plan


def _apply_sold(db: Session, plan: WorkPlan, line: WorkPlanLine, quantity_sold: int) -> None:
    if plan.closed:
        raise ConflictError("Work plan is closed, its lines are read-only")
    if quantity_sold < 0 or quantity_sold > line.quantity_initial:
        raise ValidationError(f"Sold quantity must be between 0 and {line.quantity_initial}")
    line.quantity_sold = quantity_sold
    stock_ledger.set_current_quantity(db, line.product_id, line.size, line.quantity_initial - quantity_sold)


def _lines_by_id(plan: WorkPlan, line_ids) -> dict[int, WorkPlanLine]:
    lines = {line.id: line for line in plan.lines}
    unknown = sorted(set(line_ids) - set(lines))
    if unknown:
        raise NotFoundError(f"Work plan line(s) not found: {', '.join(str(i) for i in unknown)}")
    return lines


def save_lines(db: Session, plan_id: int, edits: Mapping[int, int], actor: User | None = None) -> WorkPlan:
    if not edits:
        raise ValidationError("No line changes submitted")
    with atomic(db):
        plan = _lock_plan(db, plan_id)
        lines = _lines_by_id(plan, edits)
        for line_id, quantity_sold in edits.items():
            _apply_sold(db, plan, lines[line_id], quantity_sold)
        record_activity(
            db,
            actor,
            ActivityType.STOCK_UPDATED,
            entity_type="work_plan",
            entity_id=plan.id,
            entity_name=plan.work_date.isoformat(),
            details={"sold": {str(line_id): qty for line_id, qty in edits.items()}},
        )
    return load_plan(db, plan_id)


def record_sold(
    db: Session,
    plan_id: int,
    line_id: int,
    quantity_sold: int,
    actor: User | None = None,
) -> WorkPlan:
    return save_lines(db, plan_id, {line_id: quantity_sold}, actor)


def close_plan(
    db: Session,
    plan_id: int,
    pending_edits: Mapping[int, int] | None = None,
    actor: User | None = None,
    today: date | None = None,
) -> tuple[WorkPlan, Sale | None]:
    """Materialize the plan's sold quantities into one cash sale and close it.

    Pending edits win over stored values and are persisted first. No sale is
    created when the sold value is zero. Closing twice is refused.
    """
    today = today or business_today()
    pending_edits = pending_edits or {}
    sale: Sale | None = None
    with atomic(db):
        plan = _lock_plan(db, plan_id)
        if plan.closed:
            raise ConflictError("Work plan is already closed")
        if plan.work_date != today:
            raise ValidationError("Only today's work plan can be closed")
        lines = _lines_by_id(plan, pending_edits)
        for line_id, quantity_sold in pending_edits.items():
            _apply_sold(db, plan, lines[line_id], quantity_sold)

        sold_lines = [line for line in sorted_lines(plan) if line.quantity_sold > 0]
        total_amount = sum(line.line_total for line in sold_lines)
        if total_amount > 0:
            sale = Sale(
                work_plan_id=plan.id,
                employee_id=actor.id if actor is not None else None,
                total_amount=total_amount,
                payment_mode=PaymentMode.CASH,
                items=[
                    SaleItem(
                        product_id=line.product_id,
                        size=line.size,
                        quantity=line.quantity_sold,
                        unit_price=line.unit_price,
                    )
                    for line in sold_lines
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
                entity_name=f"Plan {plan.work_date.isoformat()}",
                details={"total": total_amount, "items": len(sold_lines), "source": "work_plan"},
            )
        plan.closed = True

    logger.info("Work plan %s closed (sale=%s)", plan_id, sale.id if sale is not None else None)
    return load_plan(db, plan_id), sale
