"""Accounts: registration, login and the owner's user-management actions."""

import pytest
from sqlalchemy import select

from boutique.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from boutique.core.security import verify_password, verify_pin_code
from boutique.models.activity import ActivityLog, ActivityType
from boutique.models.user import UserRole
from boutique.services import accounts

DEFAULT_PASSWORD = "secret123"


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------


def test_first_signup_may_claim_owner(db):
    user = accounts.signup(db, " Awa@Boutique.test ", "secret123", "Awa Diallo", role=UserRole.OWNER)

    assert user.email == "awa@boutique.test"
    assert user.role == UserRole.OWNER
    assert user.display_name == "Awa Diallo"
    assert verify_password("secret123", user.password_hash)


def test_later_signups_cannot_claim_owner(db, owner):
    with pytest.raises(PermissionDenied):
        accounts.signup(db, "intrus@boutique.test", "secret123", "Intrus", role=UserRole.OWNER)

    employee = accounts.signup(db, "fanta@boutique.test", "secret123", "Fanta Bah", phone="620000000")
    assert employee.role == UserRole.EMPLOYEE
    assert employee.profile.phone == "620000000"


@pytest.mark.parametrize(
    "email, password, full_name",
    [
        ("not-an-email", "secret123", "Fanta"),
        ("fanta@boutique.test", "123", "Fanta"),
        ("fanta@boutique.test", "secret123", "   "),
    ],
)
def test_signup_rejects_invalid_fields(db, email, password, full_name):
    with pytest.raises(ValidationError):
        accounts.signup(db, email, password, full_name)

    assert accounts.list_users(db) == []


def test_duplicate_email_is_a_conflict(db, owner):
    with pytest.raises(ConflictError):
        accounts.create_user(db, "AWA@boutique.test", "secret123", "Autre Awa", UserRole.EMPLOYEE, actor=owner)


def test_authenticate_records_login(db, employee):
    user = accounts.authenticate(db, "moussa@boutique.test", DEFAULT_PASSWORD)

    assert user.id == employee.id
    log = db.scalars(select(ActivityLog).where(ActivityLog.action_type == ActivityType.LOGIN)).one()
    assert log.user_name == "Moussa Camara"


@pytest.mark.parametrize("email, password", [("moussa@boutique.test", "wrong-pass"), ("nobody@boutique.test", "x")])
def test_authenticate_rejects_bad_credentials(db, employee, email, password):
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        accounts.authenticate(db, email, password)


# ---------------------------------------------------------------------------
# Owner actions
# ---------------------------------------------------------------------------


def test_create_user_is_logged_against_the_owner(db, owner):
    user = accounts.create_user(db, "fanta@boutique.test", "secret123", "Fanta Bah", UserRole.EMPLOYEE, actor=owner)

    assert user.role == UserRole.EMPLOYEE
    log = db.scalars(select(ActivityLog).where(ActivityLog.action_type == ActivityType.USER_CREATED)).one()
    assert log.user_id == owner.id
    assert log.entity_name == "Fanta Bah"


def test_update_role_of_another_user(db, owner, employee):
    promoted = accounts.update_role(db, employee.id, UserRole.OWNER, actor=owner)

    assert promoted.role == UserRole.OWNER
    log = db.scalars(select(ActivityLog).where(ActivityLog.action_type == ActivityType.USER_UPDATED)).one()
    assert log.details == {"role": {"from": "employe", "to": "proprietaire"}}


def test_owner_cannot_change_own_role(db, owner):
    with pytest.raises(ValidationError, match="own role"):
        accounts.update_role(db, owner.id, UserRole.EMPLOYEE, actor=owner)
    with pytest.raises(ValidationError, match="own role"):
        accounts.update_profile(db, owner.id, actor=owner, new_role=UserRole.EMPLOYEE)

    assert accounts.get_user(db, owner.id).role == UserRole.OWNER


def test_update_profile_keeps_own_role_and_renames(db, owner):
    updated = accounts.update_profile(db, owner.id, actor=owner, full_name="Awa D.", new_role=UserRole.OWNER)

    assert updated.display_name == "Awa D."
    assert updated.role == UserRole.OWNER


def test_owner_cannot_delete_self(db, owner):
    with pytest.raises(ValidationError, match="own account"):
        accounts.delete_user(db, owner.id, actor=owner)


def test_delete_user(db, owner, employee):
    accounts.delete_user(db, employee.id, actor=owner)

    with pytest.raises(NotFoundError):
        accounts.get_user(db, employee.id)


# ---------------------------------------------------------------------------
# Self-service
# ---------------------------------------------------------------------------


def test_pin_code_is_stored_hashed(db, employee):
    user = accounts.update_own_profile(db, employee, pin_code="4321")

    assert user.profile.pin_code_hash != "4321"
    assert verify_pin_code("4321", user.profile.pin_code_hash)


def test_pin_code_format(db, employee):
    with pytest.raises(ValidationError):
        accounts.update_own_profile(db, employee, pin_code="12a4")


def test_change_password_requires_current_one(db, employee):
    with pytest.raises(ValidationError, match="Current password is incorrect"):
        accounts.change_password(db, employee, "wrong-pass", "nouveau123")

    accounts.change_password(db, employee, DEFAULT_PASSWORD, "nouveau123")

    assert accounts.authenticate(db, "moussa@boutique.test", "nouveau123").id == employee.id
