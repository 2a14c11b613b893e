"""
Authorization tests: every service order route checks a named
permission before touching the store.
"""
import pytest

from service_orders_api.app.core.config import settings
from service_orders_api.app.core.db import get_connection

BASE_URL = "/api/v1/service_orders"


def test_missing_token_is_unauthorized(test_client):
    response = test_client.get(BASE_URL)

    assert response.status_code == 401
    assert response.json()["error"]["kind"] == "unauthorized"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_invalid_token_is_unauthorized(test_client):
    response = test_client.get(BASE_URL, headers={"Authorization": "Bearer not.a.token"})

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid or expired token"


@pytest.mark.parametrize(
    "granted",
    [
        "service_orders:read:resource",
        "service_orders:create:collection",
    ],
)
def test_list_requires_collection_read(test_client, make_user, granted):
    user = make_user(granted)

    response = test_client.get(BASE_URL, headers=user.headers)

    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "forbidden"


def test_create_without_permission_creates_nothing(test_client, make_user, count_orders):
    user = make_user("service_orders:read:collection")

    response = test_client.post(BASE_URL, json={"name": "nope"}, headers=user.headers)

    assert response.status_code == 403
    assert count_orders() == 0


def test_denial_comes_before_validation(test_client, make_user):
    user = make_user("service_orders:read:collection")

    response = test_client.post(BASE_URL, json={"name": "x", "state": "ordered"}, headers=user.headers)

    assert response.status_code == 403


def test_collection_edit_does_not_grant_resource_edit(test_client, make_user, make_order):
    user = make_user("service_orders:edit:collection")
    order_id = make_order(user.id, name="before")

    response = test_client.post(
        f"{BASE_URL}/{order_id}", json={"action": "edit", "resource": {"name": "after"}}, headers=user.headers
    )

    assert response.status_code == 403


def test_delete_verb_requires_resource_delete(test_client, make_user, make_order, count_orders):
    user = make_user("service_orders:delete:collection")
    order_id = make_order(user.id)

    response = test_client.delete(f"{BASE_URL}/{order_id}", headers=user.headers)

    assert response.status_code == 403
    assert count_orders() == 1


def test_cart_alias_requires_resource_read(test_client, make_user, make_order):
    user = make_user("service_orders:read:collection")
    make_order(user.id, state="cart")

    response = test_client.get(f"{BASE_URL}/cart", headers=user.headers)

    assert response.status_code == 403


def test_forbidden_is_distinct_from_not_found(test_client, make_user):
    user = make_user("service_orders:read:collection")

    response = test_client.get(f"{BASE_URL}/12345", headers=user.headers)

    assert response.status_code == 403


def test_static_super_admin_token_bypasses_permissions(test_client, make_user, monkeypatch):
    make_user()  # user 1, holding no permissions
    monkeypatch.setattr(settings, "super_admin_static_token", "static-admin")

    response = test_client.post(
        BASE_URL, json={"name": "admin cart"}, headers={"Authorization": "Bearer static-admin"}
    )

    assert response.status_code == 200
    assert response.json()["results"][0]["user_id"] == 1


def test_disabled_user_is_rejected(test_client, owner):
    conn = get_connection()
    try:
        conn.execute("UPDATE users SET disabled = 1 WHERE id = ?", (owner.id,))
        conn.commit()
    finally:
        conn.close()

    response = test_client.get(BASE_URL, headers=owner.headers)

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "User account disabled"
