from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from boutique.db.database import Base, enum_values
from boutique.models.catalog import Product, Size, size_enum
from boutique.models.user import User


class PaymentMode(str, Enum):
    CASH = "especes"
    MOBILE_MONEY = "mobile_money"
    CARD = "carte"
    CREDIT = "credit"


PAYMENT_MODE_LABELS: dict[PaymentMode, str] = {
    PaymentMode.CASH: "Espèces",
    PaymentMode.MOBILE_MONEY: "Mobile Money",
    PaymentMode.CARD: "Carte bancaire",
    PaymentMode.CREDIT: "Crédit",
}


class WorkPlan(Base):
    __tablename__ = "daily_work_plans"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    work_date: Mapped[date] = mapped_column(Date, unique=True, index=True, nullable=False)
    employee_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    closed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    lines: Mapped[list["WorkPlanLine"]] = relationship(
        back_populates="work_plan",
        cascade="all, delete-orphan",
        order_by="WorkPlanLine.id",
    )


class WorkPlanLine(Base):
    __tablename__ = "work_plan_lines"
    __table_args__ = (
        UniqueConstraint("work_plan_id", "product_id", "size", name="uq_work_plan_lines_plan_product_size"),
        CheckConstraint("quantity_sold >= 0", name="ck_work_plan_lines_sold_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    work_plan_id: Mapped[int] = mapped_column(
        ForeignKey("daily_work_plans.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), index=True, nullable=False)
    size: Mapped[Size] = mapped_column(size_enum, nullable=False)
    quantity_initial: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    quantity_sold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit_price: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    work_plan: Mapped[WorkPlan] = relationship(back_populates="lines")
    product: Mapped[Product] = relationship()

    @property
    def quantity_remaining(self) -> int:
        return self.quantity_initial - self.quantity_sold

    @property
    def line_total(self) -> int:
        return self.quantity_sold * self.unit_price


class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    sold_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    total_amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    payment_mode: Mapped[PaymentMode] = mapped_column(
        SQLEnum(PaymentMode, name="payment_mode", values_callable=enum_values),
        default=PaymentMode.CASH,
        nullable=False,
    )
    work_plan_id: Mapped[int | None] = mapped_column(
        ForeignKey("daily_work_plans.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    employee_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)

    items: Mapped[list["SaleItem"]] = relationship(
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )
    employee: Mapped[Optional[User]] = relationship()


class SaleItem(Base):
    __tablename__ = "sale_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    sale_id: Mapped[int] = mapped_column(ForeignKey("sales.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), index=True, nullable=False)
    size: Mapped[Size] = mapped_column(size_enum, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    sale: Mapped[Sale] = relationship(back_populates="items")
    product: Mapped[Product] = relationship()

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price
