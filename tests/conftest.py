"""Shared pytest fixtures: a throwaway SQLite database, sessions, users and products."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from boutique.core.security import create_access_token, hash_password
from boutique.db.database import Base, get_db
from boutique.main import app
from boutique.models.catalog import Product, Size
from boutique.models.user import Profile, User, UserRole, UserRoleAssignment
from boutique.services import catalog

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'boutique-test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory) -> Iterator[TestClient]:
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(db) -> Callable[..., User]:
    def _make(email: str, role: UserRole = UserRole.EMPLOYEE, full_name: str | None = None) -> User:
        user = User(
            email=email,
            password_hash=hash_password(DEFAULT_PASSWORD),
            is_confirmed=True,
            profile=Profile(full_name=full_name or email.split("@")[0].title()),
            role_assignment=UserRoleAssignment(role=role),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def owner(make_user) -> User:
    return make_user("awa@boutique.test", UserRole.OWNER, "Awa Diallo")


@pytest.fixture
def employee(make_user) -> User:
    return make_user("moussa@boutique.test", UserRole.EMPLOYEE, "Moussa Camara")


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(subject=str(user.id), role=user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_product(db) -> Callable[..., Product]:
    def _make(
        code: str,
        unit_price: int = 10000,
        stock: dict[Size, int] | None = None,
        name: str | None = None,
    ) -> Product:
        fields = catalog.ProductFields(code=code, name=name or f"Article {code}", unit_price=unit_price)
        return catalog.create_product(db, fields, stock or {})

    return _make
