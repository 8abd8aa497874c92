"""catalog, stock, work plans and sales

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 09:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261019_0002"
down_revision: Union[str, Sequence[str], None] = "20261019_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    size_enum = sa.Enum("XS", "S", "M", "L", "XL", "XXL", "3XL", "4XL", "5XL", name="clothing_size")
    payment_mode_enum = sa.Enum("especes", "mobile_money", "carte", "credit", name="payment_mode")

    bind = op.get_bind()
    size_enum.create(bind, checkfirst=True)
    payment_mode_enum.create(bind, checkfirst=True)

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_categories_id"), "categories", ["id"], unique=False)
    op.create_index(op.f("ix_categories_name"), "categories", ["name"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("unit_price >= 0", name="ck_products_unit_price_non_negative"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_products_category_id"), "products", ["category_id"], unique=False)
    op.create_index(op.f("ix_products_code"), "products", ["code"], unique=False)
    op.create_index(op.f("ix_products_id"), "products", ["id"], unique=False)
    op.create_index(op.f("ix_products_name"), "products", ["name"], unique=False)
    op.create_index(
        "uq_products_active_code",
        "products",
        ["code"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active"),
    )

    op.create_table(
        "stock",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("size", size_enum, nullable=False),
        sa.Column("quantity_initial", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quantity_current", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("alert_threshold", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity_current >= 0", name="ck_stock_quantity_current_non_negative"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "size", name="uq_stock_product_size"),
    )
    op.create_index(op.f("ix_stock_id"), "stock", ["id"], unique=False)
    op.create_index(op.f("ix_stock_product_id"), "stock", ["product_id"], unique=False)

    op.create_table(
        "daily_work_plans",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("closed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_daily_work_plans_employee_id"), "daily_work_plans", ["employee_id"], unique=False)
    op.create_index(op.f("ix_daily_work_plans_id"), "daily_work_plans", ["id"], unique=False)
    op.create_index(op.f("ix_daily_work_plans_work_date"), "daily_work_plans", ["work_date"], unique=True)

    op.create_table(
        "work_plan_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("work_plan_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("size", size_enum, nullable=False),
        sa.Column("quantity_initial", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quantity_sold", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity_sold >= 0", name="ck_work_plan_lines_sold_non_negative"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["work_plan_id"], ["daily_work_plans.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("work_plan_id", "product_id", "size", name="uq_work_plan_lines_plan_product_size"),
    )
    op.create_index(op.f("ix_work_plan_lines_id"), "work_plan_lines", ["id"], unique=False)
    op.create_index(op.f("ix_work_plan_lines_product_id"), "work_plan_lines", ["product_id"], unique=False)
    op.create_index(op.f("ix_work_plan_lines_work_plan_id"), "work_plan_lines", ["work_plan_id"], unique=False)

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sold_at", sa.DateTime(), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payment_mode", payment_mode_enum, nullable=False),
        sa.Column("work_plan_id", sa.Integer(), nullable=True),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["work_plan_id"], ["daily_work_plans.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sales_employee_id"), "sales", ["employee_id"], unique=False)
    op.create_index(op.f("ix_sales_id"), "sales", ["id"], unique=False)
    op.create_index(op.f("ix_sales_sold_at"), "sales", ["sold_at"], unique=False)
    op.create_index(op.f("ix_sales_work_plan_id"), "sales", ["work_plan_id"], unique=False)

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("size", size_enum, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sale_items_id"), "sale_items", ["id"], unique=False)
    op.create_index(op.f("ix_sale_items_product_id"), "sale_items", ["product_id"], unique=False)
    op.create_index(op.f("ix_sale_items_sale_id"), "sale_items", ["sale_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_sale_items_sale_id"), table_name="sale_items")
    op.drop_index(op.f("ix_sale_items_product_id"), table_name="sale_items")
    op.drop_index(op.f("ix_sale_items_id"), table_name="sale_items")
    op.drop_table("sale_items")

    op.drop_index(op.f("ix_sales_work_plan_id"), table_name="sales")
    op.drop_index(op.f("ix_sales_sold_at"), table_name="sales")
    op.drop_index(op.f("ix_sales_id"), table_name="sales")
    op.drop_index(op.f("ix_sales_employee_id"), table_name="sales")
    op.drop_table("sales")

    op.drop_index(op.f("ix_work_plan_lines_work_plan_id"), table_name="work_plan_lines")
    op.drop_index(op.f("ix_work_plan_lines_product_id"), table_name="work_plan_lines")
    op.drop_index(op.f("ix_work_plan_lines_id"), table_name="work_plan_lines")
    op.drop_table("work_plan_lines")

    op.drop_index(op.f("ix_daily_work_plans_work_date"), table_name="daily_work_plans")
    op.drop_index(op.f("ix_daily_work_plans_id"), table_name="daily_work_plans")
    op.drop_index(op.f("ix_daily_work_plans_employee_id"), table_name="daily_work_plans")
    op.drop_table("daily_work_plans")

    op.drop_index(op.f("ix_stock_product_id"), table_name="stock")
    op.drop_index(op.f("ix_stock_id"), table_name="stock")
    op.drop_table("stock")

    op.drop_index("uq_products_active_code", table_name="products")
    op.drop_index(op.f("ix_products_name"), table_name="products")
    op.drop_index(op.f("ix_products_id"), table_name="products")
    op.drop_index(op.f("ix_products_code"), table_name="products")
    op.drop_index(op.f("ix_products_category_id"), table_name="products")
    op.drop_table("products")

    op.drop_index(op.f("ix_categories_name"), table_name="categories")
    op.drop_index(op.f("ix_categories_id"), table_name="categories")
    op.drop_table("categories")

    bind = op.get_bind()
    sa.Enum(name="payment_mode").drop(bind, checkfirst=True)
    sa.Enum(name="clothing_size").drop(bind, checkfirst=True)
