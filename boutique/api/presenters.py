from boutique.models.catalog import SIZE_ORDER, Product
from boutique.models.sales import Sale, WorkPlan
from boutique.models.user import User
from boutique.schemas.auth import UserOut
from boutique.schemas.catalog import ProductOut, StockEntryOut
from boutique.schemas.functions import ManagedUserOut
from boutique.schemas.sales import PosProductOut, PosSizeOut, SaleItemOut, SaleOut, WorkPlanLineOut, WorkPlanOut
from boutique.services.stock_ledger import stock_status
from boutique.services.work_plan import sorted_lines


def product_out(product: Product) -> ProductOut:
    entries = sorted(product.stock_entries, key=lambda e: SIZE_ORDER[e.size])
    total = sum(entry.quantity_current for entry in entries)
    return ProductOut(
        id=product.id,
        code=product.code,
        name=product.name,
        description=product.description,
        unit_price=product.unit_price,
        category_id=product.category_id,
        category_name=product.category.name if product.category is not None else None,
        image_url=product.image_url,
        is_active=product.is_active,
        stock=[StockEntryOut.model_validate(entry) for entry in entries],
        total_stock=total,
        stock_status=stock_status(total),
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def pos_product_out(product: Product) -> PosProductOut:
    entries = sorted(product.stock_entries, key=lambda e: SIZE_ORDER[e.size])
    return PosProductOut(
        id=product.id,
        code=product.code,
        name=product.name,
        unit_price=product.unit_price,
        image_url=product.image_url,
        category_name=product.category.name if product.category is not None else None,
        sizes=[PosSizeOut(size=e.size, available=e.quantity_current) for e in entries if e.quantity_current > 0],
    )


def plan_out(plan: WorkPlan) -> WorkPlanOut:
    lines = sorted_lines(plan)
    return WorkPlanOut(
        id=plan.id,
        work_date=plan.work_date,
        closed=plan.closed,
        employee_id=plan.employee_id,
        notes=plan.notes,
        lines=[
            WorkPlanLineOut(
                id=line.id,
                product_id=line.product_id,
                product_code=line.product.code,
                product_name=line.product.name,
                size=line.size,
                quantity_initial=line.quantity_initial,
                quantity_sold=line.quantity_sold,
                quantity_remaining=line.quantity_remaining,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for line in lines
        ],
        total_units_sold=sum(line.quantity_sold for line in lines),
        total_amount=sum(line.line_total for line in lines),
        created_at=plan.created_at,
    )


def sale_out(sale: Sale) -> SaleOut:
    return SaleOut(
        id=sale.id,
        sold_at=sale.sold_at,
        total_amount=sale.total_amount,
        payment_mode=sale.payment_mode,
        work_plan_id=sale.work_plan_id,
        employee_id=sale.employee_id,
        seller_name=sale.employee.display_name if sale.employee is not None else None,
        notes=sale.notes,
        items=[
            SaleItemOut(
                id=item.id,
                product_id=item.product_id,
                product_code=item.product.code,
                product_name=item.product.name,
                size=item.size,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
            )
            for item in sale.items
        ],
    )


def user_out(user: User) -> UserOut:
    profile = user.profile
    return UserOut(
        id=user.id,
        email=user.email,
        full_name=profile.full_name if profile is not None else None,
        phone=profile.phone if profile is not None else None,
        role=user.role,
        is_confirmed=user.is_confirmed,
        has_pin=bool(profile is not None and profile.pin_code_hash),
        created_at=user.created_at,
    )


def managed_user_out(user: User) -> ManagedUserOut:
    profile = user.profile
    return ManagedUserOut(
        id=user.id,
        email=user.email,
        nom_complet=profile.full_name if profile is not None else None,
        telephone=profile.phone if profile is not None else None,
        role=user.role,
        created_at=user.created_at,
    )
