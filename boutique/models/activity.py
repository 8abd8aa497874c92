from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, Enum as SQLEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from boutique.db.database import Base, enum_values


class ActivityType(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    USER_BANNED = "user_banned"
    USER_UNBANNED = "user_unbanned"
    PASSWORD_CHANGED = "password_changed"
    PRODUCT_CREATED = "product_created"
    PRODUCT_UPDATED = "product_updated"
    PRODUCT_DELETED = "product_deleted"
    SALE_CREATED = "sale_created"
    SALE_DELETED = "sale_deleted"
    STOCK_UPDATED = "stock_updated"
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"


ACTIVITY_LABELS: dict[ActivityType, str] = {
    ActivityType.LOGIN: "Connexion",
    ActivityType.LOGOUT: "Déconnexion",
    ActivityType.USER_CREATED: "Utilisateur créé",
    ActivityType.USER_UPDATED: "Utilisateur modifié",
    ActivityType.USER_DELETED: "Utilisateur supprimé",
    ActivityType.USER_BANNED: "Utilisateur désactivé",
    ActivityType.USER_UNBANNED: "Utilisateur réactivé",
    ActivityType.PASSWORD_CHANGED: "Mot de passe changé",
    ActivityType.PRODUCT_CREATED: "Produit créé",
    ActivityType.PRODUCT_UPDATED: "Produit modifié",
    ActivityType.PRODUCT_DELETED: "Produit supprimé",
    ActivityType.SALE_CREATED: "Vente créée",
    ActivityType.SALE_DELETED: "Vente supprimée",
    ActivityType.STOCK_UPDATED: "Stock modifié",
    ActivityType.CATEGORY_CREATED: "Catégorie créée",
    ActivityType.CATEGORY_UPDATED: "Catégorie modifiée",
    ActivityType.CATEGORY_DELETED: "Catégorie supprimée",
}


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)
    user_name: Mapped[str] = mapped_column(String(320), nullable=False)
    action_type: Mapped[ActivityType] = mapped_column(
        SQLEnum(ActivityType, name="activity_type", values_callable=enum_values),
        index=True,
        nullable=False,
    )
    entity_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entity_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
