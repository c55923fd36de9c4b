"""Tests for user invitations, password setup and suspension."""

from __future__ import annotations

from fastapi.testclient import TestClient


def _invite(auth_client, username: str = "invitee@example.com") -> dict:
    response = auth_client.post("/api/users", json={"username": username, "first_name": "Ivy"})
    assert response.status_code == 200, response.text
    return response.json()


class TestUsers:
    def test_list_users(self, auth_client):
        users = auth_client.get("/api/users").json()
        assert [u["username"] for u in users] == ["tester@example.com"]

    def test_create_user_is_pending_with_token(self, auth_client):
        user = _invite(auth_client)
        assert user["status"] == "PENDING"
        assert len(user["password_reset_token"]) == 64

    def test_duplicate_user(self, auth_client):
        _invite(auth_client)
        response = auth_client.post("/api/users", json={"username": "invitee@example.com"})
        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists"

    def test_invalid_email(self, auth_client):
        assert auth_client.post("/api/users", json={"username": "nope"}).status_code == 422

    def test_pending_user_cannot_log_in(self, app, auth_client):
        _invite(auth_client)
        response = TestClient(app).post(
            "/api/login", json={"username": "invitee@example.com", "password": "whatever1"}
        )
        assert response.status_code == 401


class TestSetPassword:
    def test_set_password_activates(self, app, auth_client):
        user = _invite(auth_client)
        anonymous = TestClient(app)

        response = anonymous.post(
            f"/api/set-password/{user['password_reset_token']}", json={"password": "newpass1"}
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Password set successfully"}

        login = anonymous.post(
            "/api/login", json={"username": "invitee@example.com", "password": "newpass1"}
        )
        assert login.status_code == 200

    def test_token_is_single_use(self, app, auth_client):
        token = _invite(auth_client)["password_reset_token"]
        anonymous = TestClient(app)
        assert anonymous.post(f"/api/set-password/{token}", json={"password": "newpass1"}).status_code == 200

        again = anonymous.post(f"/api/set-password/{token}", json={"password": "newpass2"})
        assert again.status_code == 404
        assert again.json()["detail"] == "Invalid or expired token"

    def test_short_password(self, app, auth_client):
        token = _invite(auth_client)["password_reset_token"]
        response = TestClient(app).post(f"/api/set-password/{token}", json={"password": "abc"})
        assert response.status_code == 422


class TestInviteAndSuspend:
    def test_invite_issues_new_token(self, auth_client):
        user = _invite(auth_client)
        response = auth_client.post(f"/api/users/{user['id']}/invite")
        assert response.status_code == 200
        assert response.json()["password_reset_token"] != user["password_reset_token"]

    def test_suspend_blocks_login(self, app, auth_client, other_client):
        users = {u["username"]: u for u in auth_client.get("/api/users").json()}
        other_id = users["someone.else@example.com"]["id"]

        response = auth_client.post(f"/api/users/{other_id}/suspend")
        assert response.status_code == 200
        assert response.json()["status"] == "SUSPENDED"

        login = TestClient(app).post(
            "/api/login", json={"username": "someone.else@example.com", "password": "secret123"}
        )
        assert login.status_code == 401
        assert login.json()["detail"] == "Account is not active."

    def test_unknown_user(self, auth_client):
        assert auth_client.post("/api/users/999/suspend").status_code == 404
        assert auth_client.post("/api/users/999/invite").status_code == 404
