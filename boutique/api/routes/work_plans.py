from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from boutique.api.deps import require_permission
from boutique.api.presenters import plan_out, sale_out
from boutique.db.database import get_db
from boutique.models.user import User
from boutique.schemas.sales import (
    ClosePlanRequest,
    ClosePlanResponse,
    LineEditBatch,
    LineSoldUpdate,
    WorkPlanOut,
)
from boutique.services import work_plan

router = APIRouter(prefix="/work-plans", tags=["Work plans"])


@router.get("/{work_date}", response_model=WorkPlanOut)
def get_work_plan(
    work_date: date,
    current_user: User = Depends(require_permission("work_plans:manage")),
    db: Session = Depends(get_db),
):
    return plan_out(work_plan.get_or_create_plan(db, work_date, actor=current_user))


@router.put("/{plan_id}/lines/{line_id}", response_model=WorkPlanOut)
def record_sold(
    plan_id: int,
    line_id: int,
    payload: LineSoldUpdate,
    current_user: User = Depends(require_permission("work_plans:manage")),
    db: Session = Depends(get_db),
):
    plan = work_plan.record_sold(db, plan_id, line_id, payload.quantity_sold, actor=current_user)
    return plan_out(plan)


@router.post("/{plan_id}/lines", response_model=WorkPlanOut)
def save_lines(
    plan_id: int,
    payload: LineEditBatch,
    current_user: User = Depends(require_permission("work_plans:manage")),
    db: Session = Depends(get_db),
):
    edits = {edit.line_id: edit.quantity_sold for edit in payload.lines}
    return plan_out(work_plan.save_lines(db, plan_id, edits, actor=current_user))


@router.post("/{plan_id}/close", response_model=ClosePlanResponse)
def close_work_plan(
    plan_id: int,
    payload: ClosePlanRequest | None = None,
    current_user: User = Depends(require_permission("work_plans:manage")),
    db: Session = Depends(get_db),
):
    pending = {edit.line_id: edit.quantity_sold for edit in payload.lines} if payload is not None else {}
    plan, sale = work_plan.close_plan(db, plan_id, pending, actor=current_user)
    return ClosePlanResponse(plan=plan_out(plan), sale=sale_out(sale) if sale is not None else None)
