import logging

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from boutique.core.errors import AuthenticationError, PermissionDenied
from boutique.core.security import decode_token
from boutique.db.database import get_db
from boutique.models.user import User, UserRole

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

EMPLOYEE_PERMISSIONS = {
    "catalog:view",
    "catalog:manage",
    "stock:view",
    "stock:adjust",
    "sales:sell",
    "sales:view",
    "work_plans:manage",
    "reports:view",
    "activity:log",
}

ROLE_PERMISSIONS: dict[UserRole, set[str]] = {
    UserRole.OWNER: EMPLOYEE_PERMISSIONS | {"categories:manage", "users:manage", "activity:view"},
    UserRole.EMPLOYEE: EMPLOYEE_PERMISSIONS,
}


def _clean_candidate(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = value.strip().strip("\"'").strip()
    # Normalize accidental duplicated prefixes like: "Bearer Bearer <jwt>"
    while cleaned.lower().startswith("bearer "):
        cleaned = cleaned[7:].strip().strip("\"'").strip()
    return cleaned or None


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    raw_token = _clean_candidate(token)
    if not raw_token:
        auth_header = request.headers.get("authorization", "").strip()
        parts = auth_header.split(" ", 1)
        if len(parts) == 2 and parts[0].lower() == "bearer":
            raw_token = _clean_candidate(parts[1])
    if not raw_token:
        raise AuthenticationError("Missing authorization header")

    try:
        payload = decode_token(raw_token)
    except JWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc
    subject = payload.get("sub")
    if subject is None or payload.get("type") != "access":
        raise AuthenticationError("Invalid or expired token")

    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Invalid or expired token") from exc

    user = db.scalar(
        select(User).options(joinedload(User.profile), joinedload(User.role_assignment)).where(User.id == user_id)
    )
    if user is None:
        raise AuthenticationError("Invalid or expired token")
    return user


def require_owner(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.OWNER:
        logger.warning("User %s refused owner-only access", current_user.id)
        raise PermissionDenied("Permission denied. Only proprietaire can manage users.")
    return current_user


def require_permission(permission: str):
    def checker(current_user: User = Depends(get_current_user)) -> User:
        permissions = ROLE_PERMISSIONS.get(current_user.role, set())
        if permission not in permissions:
            logger.warning("User %s lacks permission %s", current_user.id, permission)
            raise PermissionDenied(f"Permission denied: {permission} required")
        return current_user

    return checker
