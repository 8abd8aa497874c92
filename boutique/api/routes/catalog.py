from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from boutique.api.deps import require_permission
from boutique.api.presenters import product_out
from boutique.db.database import get_db
from boutique.models.user import User
from boutique.schemas.catalog import CategoryCreate, CategoryOut, CategoryUpdate, ProductOut, ProductWrite
from boutique.services import catalog

router = APIRouter(tags=["Catalog"])


def _fields(payload: ProductWrite) -> catalog.ProductFields:
    return catalog.ProductFields(
        code=payload.code,
        name=payload.name,
        unit_price=payload.unit_price,
        description=payload.description,
        category_id=payload.category_id,
        image_url=payload.image_url,
    )


@router.get("/products", response_model=list[ProductOut])
def list_products(
    search: str | None = Query(default=None, max_length=120),
    include_inactive: bool = False,
    _: User = Depends(require_permission("catalog:view")),
    db: Session = Depends(get_db),
):
    products = catalog.list_products(db, search, active_only=not include_inactive)
    return [product_out(product) for product in products]


@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(
    product_id: int,
    _: User = Depends(require_permission("catalog:view")),
    db: Session = Depends(get_db),
):
    return product_out(catalog.get_product(db, product_id))


@router.post("/products", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductWrite,
    current_user: User = Depends(require_permission("catalog:manage")),
    db: Session = Depends(get_db),
):
    product = catalog.create_product(db, _fields(payload), payload.stock, actor=current_user)
    return product_out(product)


@router.put("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductWrite,
    current_user: User = Depends(require_permission("catalog:manage")),
    db: Session = Depends(get_db),
):
    product = catalog.update_product(db, product_id, _fields(payload), payload.stock, actor=current_user)
    return product_out(product)


@router.delete("/products/{product_id}", response_model=ProductOut)
def deactivate_product(
    product_id: int,
    current_user: User = Depends(require_permission("catalog:manage")),
    db: Session = Depends(get_db),
):
    return product_out(catalog.deactivate_product(db, product_id, actor=current_user))


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(
    _: User = Depends(require_permission("catalog:view")),
    db: Session = Depends(get_db),
):
    return catalog.list_categories(db)


@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    current_user: User = Depends(require_permission("categories:manage")),
    db: Session = Depends(get_db),
):
    return catalog.create_category(db, payload.name, payload.description, actor=current_user)


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    current_user: User = Depends(require_permission("categories:manage")),
    db: Session = Depends(get_db),
):
    return catalog.update_category(db, category_id, payload.name, payload.description, actor=current_user)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    current_user: User = Depends(require_permission("categories:manage")),
    db: Session = Depends(get_db),
):
    catalog.delete_category(db, category_id, actor=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
