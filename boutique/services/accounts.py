import logging
import re

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from boutique.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from boutique.core.security import hash_password, hash_pin_code, verify_password
from boutique.db.database import atomic
from boutique.models.activity import ActivityType
from boutique.models.user import Profile, User, UserRole, UserRoleAssignment
from boutique.services.activity_log import record_activity

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "An account with this email already exists"
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PIN_PATTERN = re.compile(r"^\d{4,8}$")
MIN_PASSWORD_LENGTH = 6


def _normalize_email(email: str | None) -> str:
    normalized = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise ValidationError("A valid email address is required")
    return normalized


def _check_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def _user_query():
    return select(User).options(joinedload(User.profile), joinedload(User.role_assignment))


def get_user(db: Session, user_id: int) -> User:
    user = db.scalar(_user_query().where(User.id == user_id))
    if user is None:
        raise NotFoundError("User not found")
    return user


def find_by_email(db: Session, email: str) -> User | None:
    return db.scalar(_user_query().where(func.lower(User.email) == email.strip().lower()))


def list_users(db: Session) -> list[User]:
    return list(db.scalars(_user_query().order_by(User.created_at.desc(), User.id.desc())).unique().all())


def _stage_account(
    db: Session,
    email: str,
    password: str,
    full_name: str,
    role: UserRole,
    phone: str | None = None,
) -> User:
    full_name = (full_name or "").strip()
    if not full_name:
        raise ValidationError("Full name is required")
    if find_by_email(db, email) is not None:
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
    user = User(
        email=email,
        password_hash=hash_password(password),
        is_confirmed=True,
        profile=Profile(full_name=full_name, phone=(phone or "").strip() or None),
        role_assignment=UserRoleAssignment(role=UserRole(role)),
    )
    db.add(user)
    db.flush()
    return user


def signup(
    db: Session,
    email: str,
    password: str,
    full_name: str,
    role: UserRole = UserRole.EMPLOYEE,
    phone: str | None = None,
) -> User:
    email = _normalize_email(email)
    _check_password(password)
    with atomic(db, DUPLICATE_EMAIL_MESSAGE):
        if UserRole(role) == UserRole.OWNER and db.scalar(select(func.count(User.id))):
            raise PermissionDenied("Owner accounts can only be created by an existing owner")
        user = _stage_account(db, email, password, full_name, role, phone)
        record_activity(
            db,
            user,
            ActivityType.USER_CREATED,
            entity_type="user",
            entity_id=user.id,
            entity_name=user.display_name,
            details={"role": user.role.value, "source": "signup"},
        )
    logger.info("Account %s registered as %s", user.id, UserRole(role).value)
    return get_user(db, user.id)


def create_user(
    db: Session,
    email: str,
    password: str,
    full_name: str,
    role: UserRole,
    actor: User,
    phone: str | None = None,
) -> User:
    email = _normalize_email(email)
    _check_password(password)
    with atomic(db, DUPLICATE_EMAIL_MESSAGE):
        user = _stage_account(db, email, password, full_name, role, phone)
        record_activity(
            db,
            actor,
            ActivityType.USER_CREATED,
            entity_type="user",
            entity_id=user.id,
            entity_name=user.display_name,
            details={"email": user.email, "role": user.role.value},
        )
    logger.info("User %s created by %s", user.id, actor.id)
    return get_user(db, user.id)


def authenticate(db: Session, email: str, password: str) -> User:
    user = find_by_email(db, email or "")
    if user is None or not verify_password(password or "", user.password_hash):
        logger.warning("Failed login for %s", (email or "").strip().lower())
        raise AuthenticationError("Invalid email or password")
    if not user.is_confirmed:
        raise AuthenticationError("Account is not confirmed")
    with atomic(db):
        record_activity(db, user, ActivityType.LOGIN, entity_type="user", entity_id=user.id, entity_name=user.display_name)
    return user


def logout(db: Session, user: User) -> None:
    with atomic(db):
        record_activity(db, user, ActivityType.LOGOUT, entity_type="user", entity_id=user.id, entity_name=user.display_name)


def delete_user(db: Session, user_id: int, actor: User) -> None:
    if user_id == actor.id:
        raise ValidationError("You cannot delete your own account")
    with atomic(db):
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        record_activity(
            db,
            actor,
            ActivityType.USER_DELETED,
            entity_type="user",
            entity_id=user.id,
            entity_name=user.display_name,
            details={"email": user.email},
        )
        db.delete(user)
    logger.info("User %s deleted by %s", user_id, actor.id)


def _assign_role(user: User, role: UserRole) -> None:
    if user.role_assignment is None:
        user.role_assignment = UserRoleAssignment(role=role)
    else:
        user.role_assignment.role = role


def update_role(db: Session, user_id: int, new_role: UserRole, actor: User) -> User:
    if user_id == actor.id:
        raise ValidationError("You cannot change your own role")
    new_role = UserRole(new_role)
    with atomic(db):
        user = get_user(db, user_id)
        previous = user.role
        _assign_role(user, new_role)
        record_activity(
            db,
            actor,
            ActivityType.USER_UPDATED,
            entity_type="user",
            entity_id=user.id,
            entity_name=user.display_name,
            details={"role": {"from": previous.value, "to": new_role.value}},
        )
    return get_user(db, user_id)


def update_profile(
    db: Session,
    user_id: int,
    actor: User,
    full_name: str | None = None,
    phone: str | None = None,
    new_role: UserRole | None = None,
) -> User:
    with atomic(db):
        user = get_user(db, user_id)
        changes: dict = {}
        if new_role is not None:
            new_role = UserRole(new_role)
            if new_role != user.role:
                if user.id == actor.id:
                    raise ValidationError("You cannot change your own role")
                changes["role"] = {"from": user.role.value, "to": new_role.value}
                _assign_role(user, new_role)
        if full_name is not None or phone is not None:
            profile = user.profile
            if profile is None:
                profile = user.profile = Profile(full_name=user.email)
            if full_name is not None:
                if not full_name.strip():
                    raise ValidationError("Full name is required")
                profile.full_name = full_name.strip()
                changes["nom_complet"] = profile.full_name
            if phone is not None:
                profile.phone = phone.strip() or None
                changes["telephone"] = profile.phone
        record_activity(
            db,
            actor,
            ActivityType.USER_UPDATED,
            entity_type="user",
            entity_id=user.id,
            entity_name=user.display_name,
            details=changes or None,
        )
    return get_user(db, user_id)


def update_own_profile(
    db: Session,
    user: User,
    full_name: str | None = None,
    phone: str | None = None,
    pin_code: str | None = None,
) -> User:
    if pin_code is not None and not PIN_PATTERN.match(pin_code):
        raise ValidationError("PIN code must be 4 to 8 digits")
    with atomic(db):
        profile = user.profile
        if profile is None:
            profile = user.profile = Profile(full_name=user.email)
        if full_name is not None:
            if not full_name.strip():
                raise ValidationError("Full name is required")
            profile.full_name = full_name.strip()
        if phone is not None:
            profile.phone = phone.strip() or None
        if pin_code is not None:
            profile.pin_code_hash = hash_pin_code(pin_code)
    return get_user(db, user.id)


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password or "", user.password_hash):
        raise ValidationError("Current password is incorrect")
    _check_password(new_password)
    with atomic(db):
        user.password_hash = hash_password(new_password)
        record_activity(
            db,
            user,
            ActivityType.PASSWORD_CHANGED,
            entity_type="user",
            entity_id=user.id,
            entity_name=user.display_name,
        )
    logger.info("Password changed for user %s", user.id)
