"""
Tests for the supporting user, role and audit endpoints.
"""


def _register(test_client, email, password="secret"):
    return test_client.post("/api/v1/users/", json={"email": email, "password": password})


def _login(test_client, email, password="secret"):
    response = test_client.post("/api/v1/users/login", json={"email": email, "password": password})
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


class TestUsers:
    def test_first_user_becomes_super_admin(self, test_client):
        first = _register(test_client, "first@example.com")
        second = _register(test_client, "second@example.com")

        assert first.status_code == 201
        assert first.json()["role_id"] == 1
        assert second.json()["role_id"] == 3

    def test_duplicate_email_is_rejected(self, test_client):
        _register(test_client, "dup@example.com")

        response = _register(test_client, "dup@example.com")

        assert response.status_code == 400

    def test_login_and_me(self, test_client):
        _register(test_client, "me@example.com")

        response = test_client.get("/api/v1/users/me", headers=_login(test_client, "me@example.com"))

        assert response.status_code == 200
        assert response.json()["email"] == "me@example.com"
        assert "password" not in response.json()

    def test_bad_credentials(self, test_client):
        _register(test_client, "me@example.com")

        response = test_client.post("/api/v1/users/login", json={"email": "me@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.json()["error"]["kind"] == "unauthorized"

    def test_registered_user_can_manage_own_orders(self, test_client):
        _register(test_client, "admin@example.com")
        _register(test_client, "shopper@example.com")
        headers = _login(test_client, "shopper@example.com")

        created = test_client.post("/api/v1/service_orders", json={"name": "cart"}, headers=headers)
        cart = test_client.get("/api/v1/service_orders/cart", headers=headers)

        assert created.status_code == 200
        assert cart.json()["id"] == created.json()["results"][0]["id"]

    def test_listing_users_requires_admin(self, test_client):
        _register(test_client, "admin@example.com")
        _register(test_client, "shopper@example.com")

        as_admin = test_client.get("/api/v1/users/", headers=_login(test_client, "admin@example.com"))
        as_user = test_client.get("/api/v1/users/", headers=_login(test_client, "shopper@example.com"))

        assert [u["email"] for u in as_admin.json()] == ["admin@example.com", "shopper@example.com"]
        assert as_user.status_code == 403


class TestRoles:
    def test_super_admin_can_grant_permissions(self, test_client):
        _register(test_client, "admin@example.com")
        shopper = _register(test_client, "shopper@example.com").json()
        admin = _login(test_client, "admin@example.com")

        role = test_client.post(
            "/api/v1/roles/",
            json={"name": "browser", "permissions": ["service_orders:read:collection"]},
            headers=admin,
        ).json()
        assigned = test_client.post(
            "/api/v1/roles/assign", json={"user_id": shopper["id"], "role_id": role["id"]}, headers=admin
        )
        shopper_headers = _login(test_client, "shopper@example.com")

        assert assigned.status_code == 204
        assert test_client.get("/api/v1/service_orders", headers=shopper_headers).status_code == 200
        assert test_client.post(
            "/api/v1/service_orders", json={"name": "x"}, headers=shopper_headers
        ).status_code == 403

    def test_invalid_permission_identifier(self, test_client):
        _register(test_client, "admin@example.com")

        response = test_client.post(
            "/api/v1/roles/",
            json={"name": "broken", "permissions": ["service_orders:fly:collection"]},
            headers=_login(test_client, "admin@example.com"),
        )

        assert response.status_code == 400
        assert "service_orders:fly:collection" in response.json()["error"]["message"]

    def test_update_and_delete_role(self, test_client):
        _register(test_client, "admin@example.com")
        admin = _login(test_client, "admin@example.com")
        role = test_client.post("/api/v1/roles/", json={"name": "temp"}, headers=admin).json()

        updated = test_client.put(
            f"/api/v1/roles/{role['id']}", json={"permissions": ["service_orders:edit:resource"]}, headers=admin
        )
        deleted = test_client.delete(f"/api/v1/roles/{role['id']}", headers=admin)
        missing = test_client.delete(f"/api/v1/roles/{role['id']}", headers=admin)

        assert updated.json()["permissions"] == ["service_orders:edit:resource"]
        assert deleted.status_code == 204
        assert missing.status_code == 404

    def test_role_in_use_cannot_be_deleted(self, test_client):
        _register(test_client, "admin@example.com")

        response = test_client.delete("/api/v1/roles/1", headers=_login(test_client, "admin@example.com"))

        assert response.status_code == 400

    def test_roles_are_super_admin_only(self, test_client):
        _register(test_client, "admin@example.com")
        _register(test_client, "shopper@example.com")

        response = test_client.get("/api/v1/roles/", headers=_login(test_client, "shopper@example.com"))

        assert response.status_code == 403


def test_audit_log_lists_service_order_mutations(test_client):
    _register(test_client, "admin@example.com")
    admin = _login(test_client, "admin@example.com")
    created = test_client.post("/api/v1/service_orders", json={"name": "cart"}, headers=admin).json()["results"][0]
    test_client.delete(f"/api/v1/service_orders/{created['id']}", headers=admin)

    response = test_client.get("/api/v1/audit/logs", params={"object_type": "service_order"}, headers=admin)

    assert response.status_code == 200
    assert [(log["action"], log["object_id"]) for log in response.json()] == [
        ("delete", created["id"]),
        ("create", created["id"]),
    ]
