from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from boutique.api.deps import require_permission
from boutique.db.database import get_db
from boutique.models.user import User
from boutique.schemas.catalog import StockAdjustRequest, StockAlertOut, StockEntryOut
from boutique.services import catalog, stock_ledger

router = APIRouter(prefix="/stock", tags=["Stock"])


@router.get("", response_model=list[StockEntryOut])
def list_stock(
    product_id: int | None = None,
    _: User = Depends(require_permission("stock:view")),
    db: Session = Depends(get_db),
):
    return stock_ledger.list_entries(db, product_id)


@router.post("/adjust", response_model=StockEntryOut)
def adjust_stock(
    payload: StockAdjustRequest,
    current_user: User = Depends(require_permission("stock:adjust")),
    db: Session = Depends(get_db),
):
    return catalog.adjust_stock(
        db,
        payload.product_id,
        payload.size,
        payload.quantity_delta,
        actor=current_user,
        reason=payload.reason,
    )


@router.get("/alerts", response_model=list[StockAlertOut])
def stock_alerts(
    _: User = Depends(require_permission("stock:view")),
    db: Session = Depends(get_db),
):
    return [
        StockAlertOut(
            stock_id=entry.id,
            product_id=entry.product_id,
            product_code=entry.product.code,
            product_name=entry.product.name,
            size=entry.size,
            quantity_current=entry.quantity_current,
            alert_threshold=entry.alert_threshold,
            status=stock_ledger.stock_status(entry.quantity_current, entry.alert_threshold),
        )
        for entry in stock_ledger.low_stock_entries(db)
    ]
