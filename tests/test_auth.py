"""
Account and session flow tests: signup, login, refresh rotation, logout,
password change, account details.
"""
from fastapi.testclient import TestClient

from conftest import DEFAULT_PASSWORD, signup
from core.database import SessionLocal
from models import Expense, User


def _user(username):
    session = SessionLocal()
    try:
        return session.query(User).filter(User.username == username).one_or_none()
    finally:
        session.close()


class TestSignup:

    def test_signup_stores_hash_not_password(self, client):
        response = signup(client, "Alice", full_name="Alice Smith")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        created = body["createdUser"]
        assert created["username"] == "alice"
        assert created["fullName"] == "alice smith"
        assert "password" not in created and "passwordHash" not in created
        assert "refreshToken" not in created

        stored = _user("alice")
        assert stored.password_hash != DEFAULT_PASSWORD

    def test_duplicate_username_conflicts(self, client):
        signup(client, "alice")
        response = signup(client, "alice", email="other@example.com")
        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "message": "Username is already taken",
            "error": "CONFLICT",
        }

    def test_duplicate_email_conflicts(self, client):
        signup(client, "alice", email="shared@example.com")
        response = signup(client, "bobby", email="Shared@Example.com")
        assert response.status_code == 409
        assert response.json()["message"] == "Email is already registered"

    def test_weak_password_rejected(self, client):
        response = signup(client, "alice", password="password")
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"
        assert _user("alice") is None

    def test_invalid_username_rejected(self, client):
        response = signup(client, "al1ce")
        assert response.status_code == 400
        assert response.json()["message"] == "Username must only contain letters."

    def test_missing_field_is_400_envelope(self, client):
        response = client.post("/api/v1/user/signup", json={"username": "alice"})
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestLogin:

    def test_login_sets_cookies_not_body_tokens(self, client):
        signup(client, "alice")
        response = client.post("/api/v1/user/login", json={"username": "ALICE", "password": DEFAULT_PASSWORD})
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["username"] == "alice"
        assert "accessToken" not in body
        assert response.cookies.get("accessToken")
        assert response.cookies.get("refreshToken")
        assert _user("alice").refresh_token == response.cookies.get("refreshToken")

    def test_wrong_password_is_401_and_persists_nothing(self, client):
        signup(client, "alice")
        response = client.post("/api/v1/user/login", json={"username": "alice", "password": "WrongP@ss123"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid user credentials"
        assert "accessToken" not in response.cookies
        assert _user("alice").refresh_token is None

    def test_unknown_user_is_404(self, client):
        response = client.post("/api/v1/user/login", json={"username": "nobody", "password": DEFAULT_PASSWORD})
        assert response.status_code == 404

    def test_missing_fields_is_400(self, client):
        response = client.post("/api/v1/user/login", json={"username": "alice"})
        assert response.status_code == 400
        assert response.json()["message"] == "All fields are required"


class TestAuthCheck:

    def test_welcome_message(self, alice):
        response = alice.get("/api/v1/user/auth-check")
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Welcome, alice"
        assert body["data"]["username"] == "alice"

    def test_no_cookie_is_401(self, client):
        response = client.get("/api/v1/user/auth-check")
        assert response.status_code == 401
        assert response.json()["message"] == "Unauthorized: No token provided"

    def test_tampered_token_is_401(self, app):
        tampered = TestClient(app, cookies={"accessToken": "eyJhbGciOiJIUzI1NiJ9.e30.bad"})
        response = tampered.get("/api/v1/user/auth-check")
        assert response.status_code == 401
        assert response.json()["message"] == "Unauthorized: Invalid or expired token"

    def test_refresh_token_not_accepted_as_access(self, app, alice):
        refresh_only = TestClient(app, cookies={"accessToken": alice.cookies.get("refreshToken")})
        assert refresh_only.get("/api/v1/user/auth-check").status_code == 401


class TestRefresh:

    def test_rotation_returns_new_pair(self, alice):
        old_refresh = alice.cookies.get("refreshToken")
        response = alice.post("/api/v1/user/refresh-token")
        assert response.status_code == 200
        body = response.json()
        assert body["refreshToken"] != old_refresh
        assert body["accessToken"]
        assert _user("alice").refresh_token == body["refreshToken"]

    def test_stale_refresh_token_rejected_after_relogin(self, app, alice):
        stale = alice.cookies.get("refreshToken")
        relogin = alice.post("/api/v1/user/login", json={"username": "alice", "password": DEFAULT_PASSWORD})
        assert relogin.status_code == 200

        replay = TestClient(app, cookies={"refreshToken": stale})
        response = replay.post("/api/v1/user/refresh-token")
        assert response.status_code == 401
        assert response.json()["message"] == "Refresh token expired or used"

    def test_used_refresh_token_cannot_be_replayed(self, app, alice):
        first = alice.cookies.get("refreshToken")
        assert alice.post("/api/v1/user/refresh-token").status_code == 200

        replay = TestClient(app, cookies={"refreshToken": first})
        assert replay.post("/api/v1/user/refresh-token").status_code == 401

    def test_missing_refresh_token(self, client):
        response = client.post("/api/v1/user/refresh-token")
        assert response.status_code == 401
        assert response.json()["message"] == "Unauthorized access"

    def test_access_token_not_accepted_as_refresh(self, app, alice):
        wrong = TestClient(app, cookies={"refreshToken": alice.cookies.get("accessToken")})
        response = wrong.post("/api/v1/user/refresh-token")
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid refresh token"


class TestLogout:

    def test_logout_clears_stored_refresh_token(self, app, alice):
        refresh = alice.cookies.get("refreshToken")
        response = alice.post("/api/v1/user/logout")
        assert response.status_code == 200
        assert _user("alice").refresh_token is None

        replay = TestClient(app, cookies={"refreshToken": refresh})
        assert replay.post("/api/v1/user/refresh-token").status_code == 401

    def test_logout_requires_auth(self, client):
        assert client.post("/api/v1/user/logout").status_code == 401


class TestChangePassword:

    def test_change_password(self, app, alice):
        response = alice.put(
            "/api/v1/user/user-password",
            json={"oldPassword": DEFAULT_PASSWORD, "newPassword": "N3wP@ssword"},
        )
        assert response.status_code == 200
        assert _user("alice").refresh_token is None

        fresh = TestClient(app)
        old_login = fresh.post("/api/v1/user/login", json={"username": "alice", "password": DEFAULT_PASSWORD})
        assert old_login.status_code == 401
        new_login = fresh.post("/api/v1/user/login", json={"username": "alice", "password": "N3wP@ssword"})
        assert new_login.status_code == 200

    def test_wrong_old_password(self, alice):
        response = alice.put(
            "/api/v1/user/user-password",
            json={"oldPassword": "WrongP@ss123", "newPassword": "N3wP@ssword"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Old password incorrect"

    def test_weak_new_password(self, alice):
        response = alice.put(
            "/api/v1/user/user-password",
            json={"oldPassword": DEFAULT_PASSWORD, "newPassword": "weak"},
        )
        assert response.status_code == 400


class TestUserDetails:

    def test_get_details(self, alice):
        response = alice.get("/api/v1/user/user-details")
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "alice@example.com"

    def test_update_details(self, alice):
        response = alice.put(
            "/api/v1/user/user-details",
            json={"username": "Alicia", "fullName": "Alicia Keys", "email": "alicia@example.com"},
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["username"] == "alicia"
        assert user["fullName"] == "alicia keys"

    def test_update_to_taken_username_conflicts(self, alice, bobby):
        response = alice.put(
            "/api/v1/user/user-details",
            json={"username": "bobby", "fullName": "Alice Smith", "email": "alice@example.com"},
        )
        assert response.status_code == 409

    def test_update_requires_all_fields(self, alice):
        response = alice.put("/api/v1/user/user-details", json={"username": "alicia"})
        assert response.status_code == 400


class TestDeleteAccount:

    def test_delete_account_leaves_records(self, app, alice):
        alice.post("/api/v1/expense", json={"item": "Coffee", "price": 4.5, "category": "personal"})
        access = alice.cookies.get("accessToken")
        response = alice.delete("/api/v1/user/user-delete")
        assert response.status_code == 200
        assert _user("alice") is None

        orphaned = TestClient(app, cookies={"accessToken": access})
        response = orphaned.get("/api/v1/user/auth-check")
        assert response.status_code == 401
        assert response.json()["message"] == "Unauthorized: User not found"

        session = SessionLocal()
        try:
            assert session.query(Expense).count() == 1
        finally:
            session.close()
