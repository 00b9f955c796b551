"""
Tests for the Auth module

Uses real bcrypt hashes and JWTs, so the auth context is not overridden.
"""

from datetime import timedelta

from app.modules.auth.models import User, UserRole
from app.modules.auth.utils import create_access_token, decode_access_token, hash_password, verify_password


def _user(db_session, email="cashier@shop.test", password="s3cret-pass", **extra):
    user = User(email=email, password=hash_password(password), full_name="Cashier", role=UserRole.STAFF, **extra)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def _bearer(user):
    token = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong", hashed)


class TestLogin:

    def test_login_returns_token(self, anonymous_client, db_session):
        _user(db_session)
        response = anonymous_client.post("/auth/login", data={"username": "cashier@shop.test", "password": "s3cret-pass"})
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["role"] == "staff"
        assert body["user"]["last_login"] is not None

        me = anonymous_client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "cashier@shop.test"

    def test_wrong_password(self, anonymous_client, db_session):
        _user(db_session)
        response = anonymous_client.post("/auth/login", data={"username": "cashier@shop.test", "password": "nope"})
        assert response.status_code == 401

    def test_inactive_account(self, anonymous_client, db_session):
        _user(db_session, is_active=False)
        response = anonymous_client.post("/auth/login", data={"username": "cashier@shop.test", "password": "s3cret-pass"})
        assert response.status_code == 403


class TestTokens:

    def test_invalid_token(self, anonymous_client, db_session):
        response = anonymous_client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_expired_token(self, anonymous_client, db_session):
        user = _user(db_session)
        token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(minutes=-1))
        response = anonymous_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_token_without_numeric_subject(self):
        assert decode_access_token(create_access_token({"sub": "cashier"})) is None
        assert decode_access_token(create_access_token({"sub": "7"})) == 7

    def test_missing_token(self, anonymous_client):
        assert anonymous_client.get("/api/sales/").status_code in (401, 403)

    def test_token_for_deactivated_user(self, anonymous_client, db_session):
        user = _user(db_session)
        headers = _bearer(user)
        user.is_active = False
        db_session.commit()
        assert anonymous_client.get("/auth/me", headers=headers).status_code == 401

    def test_staff_token_reaches_shared_routes(self, anonymous_client, db_session):
        user = _user(db_session)
        response = anonymous_client.get("/api/sales/", headers=_bearer(user))
        assert response.status_code == 200


class TestUserCreation:

    def test_admin_creates_staff(self, client):
        response = client.post("/auth/users", json={"email": "new@shop.test", "password": "long-enough"})
        assert response.status_code == 201
        assert response.json()["role"] == "staff"

        duplicate = client.post("/auth/users", json={"email": "new@shop.test", "password": "long-enough"})
        assert duplicate.status_code == 400

    def test_unknown_role_is_rejected(self, client):
        response = client.post("/auth/users", json={"email": "x@shop.test", "password": "long-enough", "role": "owner"})
        assert response.status_code == 422

    def test_staff_cannot_create_users(self, staff_client):
        response = staff_client.post("/auth/users", json={"email": "x@shop.test", "password": "long-enough"})
        assert response.status_code == 403
