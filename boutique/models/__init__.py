from boutique.models.activity import ActivityLog, ActivityType
from boutique.models.catalog import Category, Product, Size, StockEntry
from boutique.models.sales import PaymentMode, Sale, SaleItem, WorkPlan, WorkPlanLine
from boutique.models.user import Profile, User, UserRole, UserRoleAssignment

__all__ = [
    "ActivityLog",
    "ActivityType",
    "Category",
    "PaymentMode",
    "Product",
    "Profile",
    "Sale",
    "SaleItem",
    "Size",
    "StockEntry",
    "User",
    "UserRole",
    "UserRoleAssignment",
    "WorkPlan",
    "WorkPlanLine",
]
