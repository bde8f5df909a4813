"""
Unit tests for admin authentication and user management
"""
import pytest
from datetime import timedelta
from fastapi import status
from app.core.config import settings
from app.core.security import create_access_token, ensure_first_superadmin, verify_password
from app.models.models import AdminUser
from conftest import make_admin


@pytest.mark.unit
class TestAdminLogin:
    """Tests for login endpoint"""

    def test_login_success(self, client, test_admin):
        response = client.post(
            "/api/admin/auth/login",
            json={"username": "admin", "password": "adminpassword123"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["token"]
        assert data["user"]["username"] == "admin"
        assert data["user"]["role"] == "admin"
        assert "hashedPassword" not in data["user"]
        assert "hashed_password" not in data["user"]

    def test_login_unknown_user(self, client, test_admin):
        response = client.post(
            "/api/admin/auth/login",
            json={"username": "nobody", "password": "adminpassword123"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Invalid credentials"

    def test_login_wrong_password(self, client, test_admin):
        response = client.post(
            "/api/admin/auth/login",
            json={"username": "admin", "password": "wrongpassword"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Invalid credentials"

    def test_login_inactive_account(self, client, db):
        make_admin(db, "dormant", "dormantpass123", "admin", is_active=False)

        response = client.post(
            "/api/admin/auth/login",
            json={"username": "dormant", "password": "dormantpass123"}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_login_missing_password(self, client):
        response = client.post("/api/admin/auth/login", json={"username": "admin"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["detail"] == "Validation error"
        assert any(e["field"] == "password" for e in data["errors"])


@pytest.mark.unit
class TestCurrentAdmin:
    """Tests for token resolution"""

    def test_me(self, client, admin_headers):
        response = client.get("/api/admin/auth/me", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["username"] == "admin"

    def test_me_without_token(self, client):
        response = client.get("/api/admin/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_me_with_garbage_token(self, client):
        response = client.get("/api/admin/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Not authorized, token failed"

    def test_me_with_expired_token(self, client, test_admin):
        token = create_access_token({"sub": str(test_admin.id)}, expires_delta=timedelta(minutes=-5))

        response = client.get("/api/admin/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_me_for_deleted_user(self, client, db, test_admin, admin_headers):
        db.delete(test_admin)
        db.commit()

        response = client.get("/api/admin/auth/me", headers=admin_headers)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Not authorized, user not found"

    def test_me_for_deactivated_user(self, client, db, test_admin, admin_headers):
        test_admin.is_active = False
        db.commit()

        response = client.get("/api/admin/auth/me", headers=admin_headers)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_logout(self, client, admin_headers):
        response = client.post("/api/admin/auth/logout", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is True


@pytest.mark.unit
class TestRegisterAdmin:
    """Tests for account creation"""

    def test_superadmin_can_register(self, client, db, superadmin_headers):
        response = client.post(
            "/api/admin/auth/register",
            headers=superadmin_headers,
            json={"username": "newadmin", "password": "secret123"}
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["user"]["username"] == "newadmin"
        assert data["user"]["role"] == "admin"
        assert db.query(AdminUser).filter(AdminUser.username == "newadmin").first() is not None

    def test_moderator_cannot_register(self, client, moderator_headers):
        response = client.post(
            "/api/admin/auth/register",
            headers=moderator_headers,
            json={"username": "newadmin", "password": "secret123"}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_cannot_register(self, client, admin_headers):
        response = client.post(
            "/api/admin/auth/register",
            headers=admin_headers,
            json={"username": "newadmin", "password": "secret123"}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_register_duplicate_username(self, client, test_admin, superadmin_headers):
        response = client.post(
            "/api/admin/auth/register",
            headers=superadmin_headers,
            json={"username": "admin", "password": "secret123"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_register_short_password(self, client, superadmin_headers):
        response = client.post(
            "/api/admin/auth/register",
            headers=superadmin_headers,
            json={"username": "newadmin", "password": "123"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_register_invalid_role(self, client, superadmin_headers):
        response = client.post(
            "/api/admin/auth/register",
            headers=superadmin_headers,
            json={"username": "newadmin", "password": "secret123", "role": "owner"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.unit
class TestAdminUsers:
    """Tests for user management endpoints"""

    def test_list_users(self, client, test_moderator, admin_headers):
        response = client.get("/api/admin/users", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["count"] == 2
        assert {u["username"] for u in data["users"]} == {"admin", "moderator"}

    def test_moderator_cannot_list_users(self, client, moderator_headers):
        response = client.get("/api/admin/users", headers=moderator_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_get_missing_user(self, client, admin_headers):
        response = client.get("/api/admin/users/9999", headers=admin_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_update_user(self, client, test_moderator, admin_headers):
        response = client.put(
            f"/api/admin/users/{test_moderator.id}",
            headers=admin_headers,
            json={"isActive": False}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["isActive"] is False

    def test_admin_cannot_grant_superadmin(self, client, test_moderator, admin_headers):
        response = client.put(
            f"/api/admin/users/{test_moderator.id}",
            headers=admin_headers,
            json={"role": "superadmin"}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_cannot_delete_self(self, client, test_admin, admin_headers):
        response = client.delete(f"/api/admin/users/{test_admin.id}", headers=admin_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_delete_user(self, client, db, test_moderator, admin_headers):
        moderator_id = test_moderator.id

        response = client.delete(f"/api/admin/users/{moderator_id}", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        db.expire_all()
        assert db.query(AdminUser).filter(AdminUser.id == moderator_id).first() is None


@pytest.mark.unit
class TestFirstSuperadmin:
    """Tests for the configured bootstrap account"""

    def test_creates_superadmin(self, db, monkeypatch):
        monkeypatch.setattr(settings, "FIRST_SUPERADMIN_USERNAME", "owner")
        monkeypatch.setattr(settings, "FIRST_SUPERADMIN_PASSWORD", "ownerpassword123")

        user = ensure_first_superadmin(db)

        assert user.username == "owner"
        assert user.role == "superadmin"
        assert user.is_active is True
        assert verify_password("ownerpassword123", user.hashed_password)

    def test_bootstrap_account_can_log_in(self, client, db, monkeypatch):
        monkeypatch.setattr(settings, "FIRST_SUPERADMIN_USERNAME", "owner")
        monkeypatch.setattr(settings, "FIRST_SUPERADMIN_PASSWORD", "ownerpassword123")
        ensure_first_superadmin(db)

        response = client.post(
            "/api/admin/auth/login",
            json={"username": "owner", "password": "ownerpassword123"}
        )

        assert response.status_code == status.HTTP_200_OK

    def test_skipped_when_superadmin_exists(self, db, test_superadmin, monkeypatch):
        monkeypatch.setattr(settings, "FIRST_SUPERADMIN_USERNAME", "owner")
        monkeypatch.setattr(settings, "FIRST_SUPERADMIN_PASSWORD", "ownerpassword123")

        assert ensure_first_superadmin(db) is None
        assert db.query(AdminUser).filter(AdminUser.role == "superadmin").count() == 1

    def test_skipped_without_credentials(self, db, monkeypatch):
        monkeypatch.setattr(settings, "FIRST_SUPERADMIN_USERNAME", None)
        monkeypatch.setattr(settings, "FIRST_SUPERADMIN_PASSWORD", None)

        assert ensure_first_superadmin(db) is None
        assert db.query(AdminUser).count() == 0
