"""
tests/test_api_routes.py -- Integration tests for auth, donation and admin routes.

These tests exercise the full stack: FastAPI routing -> session dependency
-> UserStore/DonationStore operations -> response model serialization ->
error envelope mapping.

Fixtures used (from conftest.py):
  - api_client: (client, admin_token, admin_id) -- admin "testadmin"/"testpass123"
  - volunteer:  (username, token, user_id) -- a fresh USER per test
"""

from __future__ import annotations

import uuid

from fastapi.testclient import TestClient


def _headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _new_volunteer(client: TestClient, password: str = "pw123") -> tuple[str, str, int]:
    username = f"vol_{uuid.uuid4().hex[:8]}"
    resp = client.post("/api/v1/auth/register", json={"username": username, "password": password})
    assert resp.status_code == 201, resp.text
    user_id = resp.json()["id"]
    resp = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return username, resp.json()["access_token"], user_id


def _add_donation(client: TestClient, token: str, **fields) -> dict:
    body = {"description": "rice", "quantity": "5kg", "destination": "shelter", **fields}
    resp = client.post("/api/v1/donations", json=body, headers=_headers(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestAuthRoutes:
    def test_register_creates_user_role(self, api_client) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/v1/auth/register", json={"username": "reg_user", "password": "pw"})
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["username"] == "reg_user"
        assert data["role"] == "USER"
        assert data["logged_in"] is False
        assert "password" not in data and "password_hash" not in data

    def test_register_duplicate(self, api_client) -> None:
        client, _token, _uid = api_client
        client.post("/api/v1/auth/register", json={"username": "dup_user", "password": "x"})
        resp = client.post("/api/v1/auth/register", json={"username": "dup_user", "password": "y"})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "duplicate_username"

    def test_register_rejects_blank_username(self, api_client) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/v1/auth/register", json={"username": "   ", "password": "x"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_register_rejects_password_over_byte_limit(self, api_client) -> None:
        """72 characters of a two-byte letter is 144 bytes: rejected at validation, not in bcrypt."""
        client, _token, _uid = api_client
        resp = client.post("/api/v1/auth/register", json={"username": "long_pw_user", "password": "é" * 72})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
        login = client.post("/api/v1/auth/login", json={"username": "long_pw_user", "password": "é" * 72})
        assert login.status_code == 422

    def test_register_multibyte_password_at_limit(self, api_client) -> None:
        client, _token, _uid = api_client
        password = "é" * 36
        resp = client.post("/api/v1/auth/register", json={"username": "accent_user", "password": password})
        assert resp.status_code == 201, resp.text
        login = client.post("/api/v1/auth/login", json={"username": "accent_user", "password": password})
        assert login.status_code == 200

    def test_password_whitespace_is_kept(self, api_client) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/v1/auth/register", json={"username": "spacey", "password": " pw "})
        assert resp.status_code == 201
        assert client.post("/api/v1/auth/login", json={"username": "spacey", "password": " pw "}).status_code == 200
        assert client.post("/api/v1/auth/login", json={"username": "spacey", "password": "pw"}).status_code == 401

    def test_login_valid_credentials(self, api_client) -> None:
        client, _token, _uid = api_client
        username, _tok, _id = _new_volunteer(client)
        resp = client.post("/api/v1/auth/login", json={"username": username, "password": "pw123"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["access_token"]
        assert data["token_type"] == "bearer"
        assert data["username"] == username
        assert data["role"] == "USER"
        assert resp.headers["cache-control"] == "no-store"

    def test_login_failures_look_identical(self, api_client) -> None:
        """Wrong password and unknown username return the same 401 body."""
        client, _token, _uid = api_client
        username, _tok, _id = _new_volunteer(client)
        wrong_password = client.post("/api/v1/auth/login", json={"username": username, "password": "nope"})
        unknown_user = client.post("/api/v1/auth/login", json={"username": "no_such_user", "password": "nope"})
        assert wrong_password.status_code == unknown_user.status_code == 401
        assert wrong_password.json() == unknown_user.json()
        assert wrong_password.json()["error"]["code"] == "bad_credentials"

    def test_me_authenticated(self, api_client) -> None:
        client, token, uid = api_client
        resp = client.get("/api/v1/auth/me", headers=_headers(token))
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["id"] == uid
        assert data["username"] == "testadmin"
        assert data["role"] == "ADMIN"
        assert data["logged_in"] is True

    def test_me_unauthenticated(self, api_client) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_me_with_bogus_token(self, api_client) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/auth/me", headers=_headers("never-issued"))
        assert resp.status_code == 401

    def test_logout_revokes_and_is_idempotent(self, api_client) -> None:
        client, _token, _uid = api_client
        _username, token, _id = _new_volunteer(client)
        assert client.get("/api/v1/auth/me", headers=_headers(token)).status_code == 200

        assert client.post("/api/v1/auth/logout", headers=_headers(token)).status_code == 200
        assert client.get("/api/v1/auth/me", headers=_headers(token)).status_code == 401
        # Second logout with the dead token, and one with no token at all: still fine.
        assert client.post("/api/v1/auth/logout", headers=_headers(token)).status_code == 200
        assert client.post("/api/v1/auth/logout").status_code == 200


class TestDonationRoutes:
    def test_unauthenticated_access(self, api_client) -> None:
        client, _token, _uid = api_client
        assert client.get("/api/v1/donations").status_code == 401
        assert client.post("/api/v1/donations", json={"description": "rice"}).status_code == 401

    def test_create_donation(self, api_client, volunteer) -> None:
        client, _token, _uid = api_client
        _username, token, user_id = volunteer
        data = _add_donation(client, token)
        assert data["description"] == "rice"
        assert data["quantity"] == "5kg"
        assert data["destination"] == "shelter"
        assert data["received"] is False
        assert data["owner_id"] == user_id

    def test_create_ignores_client_owner_and_status(self, api_client, volunteer) -> None:
        """owner_id and received are not accepted from the request body."""
        client, _token, admin_id = api_client
        _username, token, user_id = volunteer
        data = _add_donation(client, token, owner_id=admin_id, received=True)
        assert data["owner_id"] == user_id
        assert data["received"] is False

    def test_create_requires_description(self, api_client, volunteer) -> None:
        client, _token, _uid = api_client
        _username, token, _id = volunteer
        resp = client.post("/api/v1/donations", json={"description": ""}, headers=_headers(token))
        assert resp.status_code == 422

    def test_list_is_scoped_to_caller(self, api_client) -> None:
        client, _token, _uid = api_client
        _a, alice_token, alice_id = _new_volunteer(client)
        _b, bob_token, bob_id = _new_volunteer(client)
        _add_donation(client, alice_token, description="rice")
        _add_donation(client, bob_token, description="beans")
        _add_donation(client, alice_token, description="pasta")

        alice_rows = client.get("/api/v1/donations", headers=_headers(alice_token)).json()
        bob_rows = client.get("/api/v1/donations", headers=_headers(bob_token)).json()
        assert [d["description"] for d in alice_rows] == ["rice", "pasta"]
        assert [d["description"] for d in bob_rows] == ["beans"]
        assert {d["owner_id"] for d in alice_rows} == {alice_id}
        assert {d["owner_id"] for d in bob_rows} == {bob_id}

    def test_foreign_donation_looks_missing(self, api_client) -> None:
        client, _token, _uid = api_client
        _a, alice_token, _alice_id = _new_volunteer(client)
        _b, bob_token, _bob_id = _new_volunteer(client)
        donation = _add_donation(client, alice_token)
        path = f"/api/v1/donations/{donation['id']}"

        assert client.get(path, headers=_headers(bob_token)).status_code == 404
        put = client.put(path, json={"description": "stolen"}, headers=_headers(bob_token))
        assert put.status_code == 404
        assert client.patch(f"{path}/received", headers=_headers(bob_token)).status_code == 404
        assert client.delete(path, headers=_headers(bob_token)).status_code == 404

        # Untouched for the owner.
        resp = client.get(path, headers=_headers(alice_token))
        assert resp.status_code == 200
        assert resp.json() == donation

    def test_update_own_donation(self, api_client, volunteer) -> None:
        client, _token, _uid = api_client
        _username, token, user_id = volunteer
        donation = _add_donation(client, token)
        resp = client.put(
            f"/api/v1/donations/{donation['id']}",
            json={"description": "brown rice", "quantity": "10kg", "destination": "school", "received": True},
            headers=_headers(token),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json() == {
            "id": donation["id"],
            "description": "brown rice",
            "quantity": "10kg",
            "destination": "school",
            "received": True,
            "owner_id": user_id,
        }

    def test_update_missing_donation(self, api_client, volunteer) -> None:
        client, _token, _uid = api_client
        _username, token, _id = volunteer
        resp = client.put("/api/v1/donations/999999", json={"description": "x"}, headers=_headers(token))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_mark_received(self, api_client, volunteer) -> None:
        client, _token, _uid = api_client
        _username, token, _id = volunteer
        donation = _add_donation(client, token)
        resp = client.patch(f"/api/v1/donations/{donation['id']}/received", headers=_headers(token))
        assert resp.status_code == 200, resp.text
        assert resp.json()["received"] is True

    def test_delete_own_donation(self, api_client, volunteer) -> None:
        client, _token, _uid = api_client
        _username, token, _id = volunteer
        donation = _add_donation(client, token)
        path = f"/api/v1/donations/{donation['id']}"
        assert client.delete(path, headers=_headers(token)).status_code == 204
        assert client.get(path, headers=_headers(token)).status_code == 404
        assert client.delete(path, headers=_headers(token)).status_code == 404


class TestAdminRoutes:
    def test_volunteer_forbidden(self, api_client, volunteer) -> None:
        client, _token, _uid = api_client
        _username, token, _id = volunteer
        for path in ("/api/v1/admin/donations", "/api/v1/admin/users"):
            resp = client.get(path, headers=_headers(token))
            assert resp.status_code == 403, path
            assert resp.json()["error"]["code"] == "forbidden"

    def test_admin_unauthenticated(self, api_client) -> None:
        client, _token, _uid = api_client
        assert client.get("/api/v1/admin/donations").status_code == 401

    def test_admin_sees_all_donations(self, api_client) -> None:
        client, admin_token, _uid = api_client
        _a, alice_token, _alice_id = _new_volunteer(client)
        _b, bob_token, _bob_id = _new_volunteer(client)
        first = _add_donation(client, alice_token)
        second = _add_donation(client, bob_token)

        resp = client.get("/api/v1/admin/donations", headers=_headers(admin_token))
        assert resp.status_code == 200
        ids = {d["id"] for d in resp.json()}
        assert {first["id"], second["id"]} <= ids

    def test_admin_may_edit_any_donation(self, api_client, volunteer) -> None:
        client, admin_token, _uid = api_client
        _username, token, user_id = volunteer
        donation = _add_donation(client, token)
        resp = client.patch(f"/api/v1/donations/{donation['id']}/received", headers=_headers(admin_token))
        assert resp.status_code == 200
        assert resp.json()["received"] is True
        assert resp.json()["owner_id"] == user_id

    def test_admin_lists_users(self, api_client, volunteer) -> None:
        client, admin_token, _uid = api_client
        username, _token, _id = volunteer
        resp = client.get("/api/v1/admin/users", headers=_headers(admin_token))
        assert resp.status_code == 200
        names = {u["username"] for u in resp.json()}
        assert {"testadmin", username} <= names

    def test_admin_creates_admin(self, api_client) -> None:
        client, admin_token, _uid = api_client
        resp = client.post(
            "/api/v1/admin/users",
            json={"username": "second_admin", "password": "pw", "role": "ADMIN"},
            headers=_headers(admin_token),
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["role"] == "ADMIN"
        login = client.post("/api/v1/auth/login", json={"username": "second_admin", "password": "pw"})
        assert login.json()["role"] == "ADMIN"

    def test_admin_create_rejects_password_over_byte_limit(self, api_client) -> None:
        client, admin_token, _uid = api_client
        resp = client.post(
            "/api/v1/admin/users",
            json={"username": "long_pw_admin", "password": "é" * 72, "role": "ADMIN"},
            headers=_headers(admin_token),
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_delete_user_with_donations_restricted(self, api_client, volunteer) -> None:
        client, admin_token, _uid = api_client
        username, token, _id = volunteer
        _add_donation(client, token)
        resp = client.delete(f"/api/v1/admin/users/{username}", headers=_headers(admin_token))
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "has_donations"
        # Still able to use the account.
        assert client.get("/api/v1/auth/me", headers=_headers(token)).status_code == 200

    def test_delete_user_without_donations(self, api_client, volunteer) -> None:
        client, admin_token, _uid = api_client
        username, token, _id = volunteer
        resp = client.delete(f"/api/v1/admin/users/{username}", headers=_headers(admin_token))
        assert resp.status_code == 204
        # The deleted user's session dies with the row.
        assert client.get("/api/v1/auth/me", headers=_headers(token)).status_code == 401

    def test_delete_missing_user(self, api_client) -> None:
        client, admin_token, _uid = api_client
        resp = client.delete("/api/v1/admin/users/ghost_user", headers=_headers(admin_token))
        assert resp.status_code == 404

    def test_admin_cannot_delete_self(self, api_client) -> None:
        client, admin_token, _uid = api_client
        resp = client.delete("/api/v1/admin/users/testadmin", headers=_headers(admin_token))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "self_delete"


def test_end_to_end_bob_rice(api_client) -> None:
    """register bob -> login -> add rice -> list mine -> mark received -> admin sees it received."""
    client, admin_token, _uid = api_client
    resp = client.post("/api/v1/auth/register", json={"username": "bob", "password": "pw123"})
    assert resp.status_code == 201
    bob_id = resp.json()["id"]
    assert resp.json()["role"] == "USER"

    token = client.post("/api/v1/auth/login", json={"username": "bob", "password": "pw123"}).json()["access_token"]
    donation = _add_donation(client, token, description="rice", quantity="5kg", destination="shelter")
    assert donation["owner_id"] == bob_id

    mine = client.get("/api/v1/donations", headers=_headers(token)).json()
    assert len(mine) == 1
    assert mine[0]["received"] is False

    resp = client.put(
        f"/api/v1/donations/{donation['id']}",
        json={"description": "rice", "quantity": "5kg", "destination": "shelter", "received": True},
        headers=_headers(token),
    )
    assert resp.status_code == 200

    everything = client.get("/api/v1/admin/donations", headers=_headers(admin_token)).json()
    matching = [d for d in everything if d["id"] == donation["id"]]
    assert len(matching) == 1
    assert matching[0]["received"] is True
