"""
Shared fixtures for the Service Orders API tests.

Each test runs against its own SQLite file under ``tmp_path``.  Users
are created directly through the service layer with a role carrying
exactly the permissions the test grants, mirroring how an
administrator would set them up.
"""
import asyncio
import itertools
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from service_orders_api.app.core.config import settings
from service_orders_api.app.core.db import USER_ROLE_ID, get_connection, init_db
from service_orders_api.app.core.security import create_access_token
from service_orders_api.app.main import app
from service_orders_api.app.schemas.user import UserCreate
from service_orders_api.app.services.role_service import RoleService
from service_orders_api.app.services.user_service import UserService


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "service_orders.db"))
    monkeypatch.setattr(settings, "super_admin_static_token", "")
    init_db()
    yield


@pytest.fixture
def test_client():
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_user():
    """Factory creating a user whose role holds ``permissions``.

    With ``permissions=None`` the user gets the default ``user`` role.
    """
    counter = itertools.count(1)

    def _make(*permissions: str, default_role: bool = False, email: str = None):
        n = next(counter)
        email = email or f"user{n}@example.com"
        role_id = USER_ROLE_ID
        if not default_role:
            role = asyncio.run(RoleService.create_role(f"test-role-{n}", list(permissions)))
            role_id = role["id"]
        user = asyncio.run(
            UserService.create_user(UserCreate(email=email, password="secret"), role_id=role_id)
        )
        token = create_access_token({"sub": email})
        return SimpleNamespace(
            id=user.id,
            email=email,
            role_id=role_id,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest.fixture
def owner(make_user):
    """A user holding every service order permission."""
    return make_user(default_role=True)


def insert_order(user_id: int, name: str = "service order", state: str = "wish") -> int:
    conn = get_connection()
    try:
        cursor = conn.execute(
            "INSERT INTO service_orders (name, state, user_id) VALUES (?, ?, ?)",
            (name, state, user_id),
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()


def order_count() -> int:
    conn = get_connection()
    try:
        return conn.execute("SELECT COUNT(*) AS count FROM service_orders").fetchone()["count"]
    finally:
        conn.close()


@pytest.fixture
def make_order():
    return insert_order


@pytest.fixture
def count_orders():
    return order_count
