"""Tests for the authentication system."""
from datetime import timedelta

import pytest
from fastapi import status
from google.auth.exceptions import TransportError

from schoolhub.auth.service import AuthService
from schoolhub.errors import Unauthenticated
from schoolhub.models import User, UserRole


def register_payload(**overrides):
    payload = {
        "email": "New.User@Example.com",
        "password": "NewPass123!",
        "firstName": "New",
        "lastName": "User",
        "role": "student",
    }
    payload.update(overrides)
    return payload


class TestRegistration:
    def test_register_user(self, client, db_session):
        """Registration returns a token and the camelCase user without its hash."""
        response = client.post("/api/auth/register", json=register_payload())
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["success"] is True
        assert data["token"]
        assert data["user"]["email"] == "new.user@example.com"
        assert data["user"]["firstName"] == "New"
        assert "passwordHash" not in data["user"]
        assert "password_hash" not in data["user"]

        stored = db_session.query(User).filter(User.email == "new.user@example.com").one()
        assert stored.password_hash != "NewPass123!"
        assert stored.verify_password("NewPass123!")

    def test_duplicate_email_conflicts(self, client):
        assert client.post("/api/auth/register", json=register_payload()).status_code == 201
        response = client.post("/api/auth/register", json=register_payload(password="Another123!"))
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {"success": False, "message": "Email already registered"}

    def test_admin_cannot_self_register(self, client):
        response = client.post("/api/auth/register", json=register_payload(role="admin"))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False

    def test_short_password_rejected(self, client):
        response = client.post("/api/auth/register", json=register_payload(password="123"))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_role_extension_must_match_role(self, client):
        payload = register_payload(teacherDetails={"department": "Science"})
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_register_teacher_with_details(self, client):
        payload = register_payload(
            email="teach@example.com",
            role="teacher",
            teacherDetails={"department": "Science", "subjects": ["Physics"]},
        )
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == status.HTTP_201_CREATED
        details = response.json()["user"]["teacherDetails"]
        assert details["department"] == "Science"
        assert details["subjects"] == ["Physics"]


class TestLogin:
    def test_login(self, client, student, password):
        response = client.post("/api/auth/login", json={"email": student.email, "password": password})
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["token"]
        assert data["user"]["id"] == student.id
        assert data["user"]["role"] == "student"

    def test_invalid_credentials(self, client, student):
        response = client.post("/api/auth/login", json={"email": student.email, "password": "wrongpassword"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"success": False, "message": "Invalid credentials"}

    def test_unknown_email(self, client, password):
        response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": password})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_me_and_logout(self, client, teacher, auth_headers):
        headers = auth_headers(teacher)
        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["data"]["email"] == teacher.email

        logout = client.post("/api/auth/logout", headers=headers)
        assert logout.json() == {"success": True, "data": {}}

    def test_missing_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["success"] is False

    def test_garbage_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_token_for_deleted_user(self, client, db_session, make_user, auth_headers):
        user = make_user(UserRole.parent)
        headers = auth_headers(user)
        db_session.delete(user)
        db_session.commit()
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestTokens:
    def test_token_claims_round_trip(self, db_session, teacher):
        service = AuthService(db_session)
        token = service.create_access_token(teacher)
        data = service.verify_token(token)
        assert data.user_id == teacher.id
        assert data.role == "teacher"

    def test_expired_token(self, db_session, teacher):
        service = AuthService(db_session)
        token = service.create_access_token(teacher, expires_delta=timedelta(seconds=-5))
        with pytest.raises(Unauthenticated):
            service.verify_token(token)


class TestFederatedSignIn:
    VERIFY = "schoolhub.auth.service.google_id_token.verify_firebase_token"

    def claims(self, **overrides):
        claims = {
            "iss": "https://securetoken.google.com/schoolhub-test",
            "aud": "schoolhub-test",
            "sub": "fed-uid-1",
            "email": "fed.user@example.com",
            "name": "Fed User",
            "picture": "https://example.com/p.png",
        }
        claims.update(overrides)
        return claims

    def test_first_sign_in_provisions_student(self, client, db_session, monkeypatch):
        def fake_verify(token, request, audience=None):
            assert token == "good-token"
            assert audience == "schoolhub-test"
            return self.claims()

        monkeypatch.setattr(self.VERIFY, fake_verify)

        response = client.post("/api/auth/firebase", json={"idToken": "good-token"})
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user"]["role"] == "student"
        assert data["user"]["firstName"] == "Fed"
        user = db_session.query(User).filter(User.federated_uid == "fed-uid-1").one()
        assert user.email == "fed.user@example.com"

        # Second sign-in reuses the same account
        again = client.post("/api/auth/firebase", json={"idToken": "good-token"})
        assert again.json()["user"]["id"] == user.id
        assert db_session.query(User).filter(User.email == "fed.user@example.com").count() == 1

    def test_registered_email_is_not_taken_over(self, client, db_session, admin, monkeypatch):
        claims = self.claims(sub="other-uid", email=admin.email.upper(), email_verified=False)
        monkeypatch.setattr(self.VERIFY, lambda token, request, audience=None: claims)

        response = client.post("/api/auth/firebase", json={"idToken": "t"})
        assert response.status_code == status.HTTP_409_CONFLICT
        assert "token" not in response.json()
        db_session.refresh(admin)
        assert admin.federated_uid is None
        assert db_session.query(User).filter(User.federated_uid == "other-uid").count() == 0

    def test_foreign_issuer_rejected(self, client, monkeypatch):
        claims = self.claims(iss="https://securetoken.google.com/another-project")
        monkeypatch.setattr(self.VERIFY, lambda token, request, audience=None: claims)
        response = client.post("/api/auth/firebase", json={"idToken": "t"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_invalid_token_rejected(self, client, monkeypatch):
        def reject(token, request, audience=None):
            raise ValueError("Token has wrong audience")

        monkeypatch.setattr(self.VERIFY, reject)
        response = client.post("/api/auth/firebase", json={"idToken": "bad"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_unreachable_key_server(self, client, monkeypatch):
        def unreachable(token, request, audience=None):
            raise TransportError("connection refused")

        monkeypatch.setattr(self.VERIFY, unreachable)
        response = client.post("/api/auth/firebase", json={"idToken": "t"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Could not verify federated credential"
