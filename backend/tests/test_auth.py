# Overview: Pytest coverage for registration, login throttling, sessions and refresh tokens.

"""
Authentication tests.

Verifies:
- Registration enforces password strength and uniqueness
- Login locks an identifier after 5 failures in 15 minutes
- Logout, idle timeout and deactivation invalidate tokens
- "Remember me" refresh tokens mint new sessions until logout
"""

from datetime import timedelta

import pytest

from conftest import PASSWORD, auth_headers
from retail.extensions import db
from retail.models import SecurityEvent, SessionToken
from retail.services.auth_service import PasswordValidationError, validate_password_strength
from retail.time_utils import utcnow


def _login(client, identifier, password=PASSWORD, **extra):
    return client.post("/api/auth/login", json=dict(extra, username=identifier, password=password))


class TestRegistration:

    def test_register_creates_viewer(self, client):
        resp = client.post("/api/auth/register", json={
            "username": "newbie",
            "email": "Newbie@Example.com",
            "password": "Str0ng!pass",
        })

        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["role"] == "viewer"
        assert user["email"] == "newbie@example.com"
        assert "password_hash" not in user

    def test_weak_password_rejected(self, client):
        resp = client.post("/api/auth/register", json={
            "username": "weak", "email": "weak@example.com", "password": "password",
        })
        assert resp.status_code == 400

    def test_duplicate_username(self, client, make_user):
        make_user("viewer", username="taken")
        resp = client.post("/api/auth/register", json={
            "username": "taken", "email": "other@example.com", "password": "Str0ng!pass",
        })
        assert resp.status_code == 409

    def test_invalid_email(self, client):
        resp = client.post("/api/auth/register", json={
            "username": "x", "email": "not-an-email", "password": "Str0ng!pass",
        })
        assert resp.status_code == 400


class TestPasswordStrength:

    @pytest.mark.parametrize("password", ["Sh0rt!", "alllower1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial12"])
    def test_weak_passwords(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_strong_password(self):
        validate_password_strength("Good-pass1")


class TestLogin:

    def test_login_by_username_returns_token_and_permissions(self, client, make_user):
        make_user("sales")

        resp = _login(client, "sales_user")

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["token"]
        assert data["user"]["username"] == "sales_user"
        assert "CREATE_SALE" in data["permissions"]
        assert "refresh_token" not in data

    def test_login_by_email(self, client, make_user):
        make_user("viewer")
        resp = client.post("/api/auth/login", json={"email": "VIEWER_USER@retail.test", "password": PASSWORD})
        assert resp.status_code == 200

    def test_wrong_password(self, client, make_user):
        make_user("viewer")
        resp = _login(client, "viewer_user", "Wrong-pass1")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"

    def test_missing_fields(self, client):
        assert client.post("/api/auth/login", json={"username": "x"}).status_code == 400

    def test_inactive_user_cannot_login(self, client, make_user):
        user = make_user("viewer")
        user.is_active = False
        db.session.commit()
        assert _login(client, "viewer_user").status_code == 401


class TestLoginThrottle:

    def test_lockout_after_five_failures(self, client, make_user):
        make_user("viewer")

        statuses = [_login(client, "viewer_user", "Wrong-pass1").status_code for _ in range(4)]
        assert statuses == [401, 401, 401, 401]

        resp = _login(client, "viewer_user", "Wrong-pass1")
        assert resp.status_code == 429
        assert resp.get_json()["locked"] is True

        # Correct password is refused while locked
        resp = _login(client, "viewer_user")
        assert resp.status_code == 429
        assert resp.get_json()["retry_after_seconds"] > 0

    def test_warning_when_few_attempts_remain(self, client, make_user):
        make_user("viewer")
        for _ in range(2):
            _login(client, "viewer_user", "Wrong-pass1")

        resp = _login(client, "viewer_user", "Wrong-pass1")
        assert "2 attempts remaining" in resp.get_json()["warning"]

    def test_success_resets_failure_count(self, client, make_user):
        make_user("viewer")
        for _ in range(4):
            _login(client, "viewer_user", "Wrong-pass1")
        assert _login(client, "viewer_user").status_code == 200

        for _ in range(4):
            resp = _login(client, "viewer_user", "Wrong-pass1")
        assert resp.status_code == 401

    def test_old_failures_expire(self, client, make_user):
        make_user("viewer")
        for _ in range(5):
            _login(client, "viewer_user", "Wrong-pass1")

        for event in db.session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED"):
            event.occurred_at = utcnow() - timedelta(minutes=20)
        db.session.commit()

        assert _login(client, "viewer_user").status_code == 200


class TestSessions:

    def test_me_and_permissions(self, client, make_user):
        headers = auth_headers(make_user("manager"))

        me = client.get("/api/auth/me", headers=headers).get_json()
        assert me["user"]["role"] == "manager"

        perms = client.get("/api/auth/permissions", headers=headers).get_json()
        assert perms["role"] == "manager"
        assert "APPROVE_RETURN" in perms["permissions"]
        assert "DELETE_PRODUCTS" not in perms["permissions"]
        assert set(perms["roles"]) == {"admin", "manager", "sales", "viewer"}
        assert "RETURNS" in perms["by_category"]
        assert "USERS" not in perms["by_category"]

    def test_logout_revokes_token(self, client, make_user):
        headers = auth_headers(make_user("viewer"))

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_garbage_token(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_idle_session_expires(self, client, make_user):
        headers = auth_headers(make_user("viewer"))
        session = db.session.query(SessionToken).one()
        session.last_used_at = utcnow() - timedelta(hours=3)
        db.session.commit()

        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_deactivated_user_token_rejected(self, client, make_user):
        user = make_user("viewer")
        headers = auth_headers(user)
        user.is_active = False
        db.session.commit()

        assert client.get("/api/auth/me", headers=headers).status_code == 401


class TestRefreshToken:

    def test_remember_me_refresh_flow(self, client, make_user):
        make_user("sales")
        data = _login(client, "sales_user", remember_me=True).get_json()
        refresh_token = data["refresh_token"]

        resp = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert resp.status_code == 200
        new_token = resp.get_json()["token"]
        assert new_token != data["token"]

        headers = {"Authorization": f"Bearer {new_token}"}
        client.post("/api/auth/logout", headers=headers)

        resp = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert resp.status_code == 401

    def test_unknown_refresh_token(self, client):
        assert client.post("/api/auth/refresh", json={"refresh_token": "abc"}).status_code == 401


class TestAccountSelfService:

    def test_change_password(self, client, make_user):
        headers = auth_headers(make_user("viewer"))

        resp = client.put("/api/auth/password", json={
            "current_password": "Wrong-pass1", "new_password": "N3w-password",
        }, headers=headers)
        assert resp.status_code == 400

        resp = client.put("/api/auth/password", json={
            "current_password": PASSWORD, "new_password": "N3w-password",
        }, headers=headers)
        assert resp.status_code == 200
        assert _login(client, "viewer_user", "N3w-password").status_code == 200

    def test_profile_picture(self, client, make_user):
        headers = auth_headers(make_user("viewer"))

        resp = client.put("/api/auth/profile-picture", json={"profile_picture": "avatars/7.png"},
                          headers=headers)
        assert resp.get_json()["user"]["profile_picture"] == "avatars/7.png"

        resp = client.put("/api/auth/profile-picture", json={"profile_picture": ""}, headers=headers)
        assert resp.get_json()["user"]["profile_picture"] is None
