from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from boutique.api.deps import require_permission
from boutique.api.presenters import pos_product_out, sale_out
from boutique.core.clock import business_today
from boutique.core.config import settings
from boutique.db.database import get_db
from boutique.models.sales import PaymentMode
from boutique.models.user import User
from boutique.schemas.sales import CheckoutRequest, PosProductOut, SaleOut, SalesTotalsOut
from boutique.services import checkout as checkout_service

router = APIRouter(tags=["Sales"])


@router.get("/pos/products", response_model=list[PosProductOut])
def pos_products(
    _: User = Depends(require_permission("sales:sell")),
    db: Session = Depends(get_db),
):
    return [pos_product_out(product) for product in checkout_service.sellable_products(db)]


@router.post("/sales/checkout", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def checkout(
    payload: CheckoutRequest,
    current_user: User = Depends(require_permission("sales:sell")),
    db: Session = Depends(get_db),
):
    cart = checkout_service.build_cart(db, [(line.product_id, line.size, line.quantity) for line in payload.lines])
    sale = checkout_service.checkout(
        db,
        cart,
        payload.payment_mode,
        actor=current_user,
        notes=payload.notes,
    )
    return sale_out(sale)


def _filtered_sales(db, date_from, date_to, payment_mode, search):
    return checkout_service.list_sales(
        db,
        date_from=date_from,
        date_to=date_to,
        payment_mode=payment_mode,
        search=search,
    )


@router.get("/sales", response_model=list[SaleOut])
def list_sales(
    date_from: date | None = None,
    date_to: date | None = None,
    payment_mode: PaymentMode | None = None,
    search: str | None = Query(default=None, max_length=120),
    _: User = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    sales = _filtered_sales(db, date_from, date_to, payment_mode, search)
    return [sale_out(sale) for sale in sales]


@router.get("/sales/summary", response_model=SalesTotalsOut)
def sales_summary(
    date_from: date | None = None,
    date_to: date | None = None,
    payment_mode: PaymentMode | None = None,
    search: str | None = Query(default=None, max_length=120),
    _: User = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    totals = checkout_service.sales_totals(_filtered_sales(db, date_from, date_to, payment_mode, search))
    return SalesTotalsOut(
        currency=settings.currency,
        revenue=totals.revenue,
        sale_count=totals.sale_count,
        items_sold=totals.items_sold,
    )


@router.get("/sales/export")
def export_sales(
    date_from: date | None = None,
    date_to: date | None = None,
    payment_mode: PaymentMode | None = None,
    search: str | None = Query(default=None, max_length=120),
    _: User = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    sales = _filtered_sales(db, date_from, date_to, payment_mode, search)
    filename = f"ventes_{business_today().isoformat()}.csv"
    return Response(
        content=checkout_service.sales_csv(sales),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/sales/{sale_id}", response_model=SaleOut)
def get_sale(
    sale_id: int,
    _: User = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    return sale_out(checkout_service.get_sale(db, sale_id))
