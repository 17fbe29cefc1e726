"""
Authentication tests: register, login, password reset, token handling
"""
import hashlib
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from faker import Faker

from volunteer_connect.core.config import settings
from volunteer_connect.core.rate_limiter import limiter
from volunteer_connect.core.security import create_access_token
from volunteer_connect.models import User, PasswordResetToken
from volunteer_connect.services.lifecycle import utcnow
from tests.conftest import DEFAULT_PASSWORD, headers_for

fake = Faker()


def register_payload(**overrides):
    payload = {
        "name": fake.name(),
        "email": fake.unique.email(),
        "mobile": "555-0100",
        "password": "secret123",
        "confirmPassword": "secret123",
    }
    payload.update(overrides)
    return payload


class TestRegister:

    def test_register_creates_volunteer(self, client):
        response = client.post("/api/auth/register", json=register_payload())
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["role_id"] == 1
        assert data["user_type"] == "volunteer"
        assert data["phone"] == "555-0100"
        assert "hashed_password" not in data

    def test_snake_case_fields_accepted(self, client):
        payload = register_payload()
        payload["confirm_password"] = payload.pop("confirmPassword")
        payload["phone"] = payload.pop("mobile")
        assert client.post("/api/auth/register", json=payload).status_code == 201

    def test_password_mismatch(self, client):
        response = client.post("/api/auth/register", json=register_payload(confirmPassword="different1"))
        assert response.status_code == 400
        assert response.json()["message"] == "Passwords do not match"

    def test_short_password(self, client):
        response = client.post("/api/auth/register", json=register_payload(password="abc", confirmPassword="abc"))
        assert response.status_code == 400

    def test_bad_email(self, client):
        response = client.post("/api/auth/register", json=register_payload(email="not-an-email"))
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email format"

    def test_duplicate_email(self, client, volunteer):
        response = client.post("/api/auth/register", json=register_payload(email=volunteer.email))
        assert response.status_code == 409

    def test_missing_field_uses_envelope(self, client):
        response = client.post("/api/auth/register", json={"email": "a@b.co"})
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestLogin:

    def test_login_returns_token(self, client, volunteer, db_session):
        response = client.post("/api/auth/login", json={"email": volunteer.email, "password": DEFAULT_PASSWORD})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token"]
        assert data["user"]["id"] == volunteer.id

        me = client.get("/api/users/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.json()["data"]["email"] == volunteer.email

        db_session.expire_all()
        assert db_session.get(User, volunteer.id).last_login_at is not None

    def test_wrong_password(self, client, volunteer):
        response = client.post("/api/auth/login", json={"email": volunteer.email, "password": "wrong-pass"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_unknown_email(self, client):
        response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "whatever"})
        assert response.status_code == 401

    def test_deactivated_account(self, client, make_user):
        user = make_user(is_active=False)
        response = client.post("/api/auth/login", json={"email": user.email, "password": DEFAULT_PASSWORD})
        assert response.status_code == 401

    def test_login_is_rate_limited(self, client, volunteer):
        payload = {"email": volunteer.email, "password": "wrong-pass"}
        limiter.reset()
        try:
            with patch.object(limiter, "enabled", True):
                statuses = [client.post("/api/auth/login", json=payload).status_code for _ in range(11)]
                blocked = client.post("/api/auth/login", json=payload)
        finally:
            limiter.reset()
        assert statuses == [401] * 10 + [429]
        assert blocked.status_code == 429
        assert blocked.json()["success"] is False
        assert blocked.json()["message"].startswith("Too many requests")
        assert response.json()["message"] == "Account is deactivated"


class TestTokenGate:

    def test_missing_token(self, client):
        assert client.get("/api/users/me").status_code == 401

    def test_garbage_token(self, client):
        assert client.get("/api/users/me", headers={"Authorization": "Bearer nope"}).status_code == 401

    def test_expired_token(self, client, volunteer):
        token = create_access_token({"sub": str(volunteer.id)}, expires_delta=timedelta(seconds=-5))
        assert client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_query_token_ignored_by_default(self, client, volunteer):
        token = headers_for(volunteer)["Authorization"].split(" ", 1)[1]
        assert client.get(f"/api/users/me?token={token}").status_code == 401

    def test_query_token_accepted_when_enabled(self, client, volunteer):
        token = headers_for(volunteer)["Authorization"].split(" ", 1)[1]
        with patch.object(settings, "ALLOW_QUERY_TOKEN", True):
            response = client.get(f"/api/users/me?token={token}")
        assert response.status_code == 200
        assert response.json()["data"]["id"] == volunteer.id

    def test_token_of_deactivated_user_rejected(self, client, volunteer, auth_headers, db_session):
        volunteer.is_active = False
        db_session.commit()
        assert client.get("/api/users/me", headers=auth_headers).status_code == 401

    def test_token_of_deleted_user_rejected(self, client, volunteer, auth_headers, db_session):
        db_session.delete(volunteer)
        db_session.commit()
        assert client.get("/api/users/me", headers=auth_headers).status_code == 401


class TestPasswordReset:

    def test_unknown_email_gets_generic_message(self, client):
        with patch(
            "volunteer_connect.services.auth_service.email_service.send_password_reset_email",
            new=AsyncMock(return_value=True),
        ) as send:
            response = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert response.status_code == 200
        assert response.json()["success"] is True
        send.assert_not_awaited()

    def test_full_reset_flow(self, client, volunteer, db_session):
        with patch(
            "volunteer_connect.services.auth_service.email_service.send_password_reset_email",
            new=AsyncMock(return_value=True),
        ) as send:
            first = client.post("/api/auth/forgot-password", json={"email": volunteer.email})
            client.post("/api/auth/forgot-password", json={"email": volunteer.email})
        assert first.status_code == 200
        assert send.await_count == 2
        token = send.await_args.args[2]

        db_session.expire_all()
        stored = db_session.query(PasswordResetToken).filter_by(user_id=volunteer.id).all()
        assert len(stored) == 2
        assert sum(1 for t in stored if not t.used) == 1
        assert hashlib.sha256(token.encode()).hexdigest() in {t.token_hash for t in stored}

        reset = client.post("/api/auth/reset-password-with-token", json={"token": token, "newPassword": "brandnew1"})
        assert reset.status_code == 200

        login = client.post("/api/auth/login", json={"email": volunteer.email, "password": "brandnew1"})
        assert login.status_code == 200

        reused = client.post("/api/auth/reset-password-with-token", json={"token": token, "new_password": "another1"})
        assert reused.status_code == 400

    def test_email_failure_is_not_revealed(self, client, volunteer):
        with patch(
            "volunteer_connect.services.auth_service.email_service.send_password_reset_email",
            new=AsyncMock(return_value=False),
        ):
            response = client.post("/api/auth/forgot-password", json={"email": volunteer.email})
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_expired_token_rejected(self, client, volunteer, db_session):
        db_session.add(PasswordResetToken(
            user_id=volunteer.id,
            token_hash=hashlib.sha256(b"expired-token").hexdigest(),
            expires_at=utcnow() - timedelta(minutes=1),
        ))
        db_session.commit()
        response = client.post(
            "/api/auth/reset-password-with-token", json={"token": "expired-token", "newPassword": "brandnew1"}
        )
        assert response.status_code == 400


class TestChangePassword:

    def test_change_password(self, client, volunteer, auth_headers):
        response = client.put("/api/users/change-password", headers=auth_headers, json={
            "currentPassword": DEFAULT_PASSWORD, "newPassword": "evenbetter1",
        })
        assert response.status_code == 200
        login = client.post("/api/auth/login", json={"email": volunteer.email, "password": "evenbetter1"})
        assert login.status_code == 200

    def test_wrong_current_password(self, client, auth_headers):
        response = client.put("/api/users/change-password", headers=auth_headers, json={
            "currentPassword": "not-it", "newPassword": "evenbetter1",
        })
        assert response.status_code == 401

    def test_same_password_rejected(self, client, auth_headers):
        response = client.put("/api/users/change-password", headers=auth_headers, json={
            "currentPassword": DEFAULT_PASSWORD, "newPassword": DEFAULT_PASSWORD,
        })
        assert response.status_code == 400
