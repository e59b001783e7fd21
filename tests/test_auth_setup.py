from timeclock.core.config import settings
from timeclock.core.roles import UserRole
from timeclock.models import User

from conftest import ADMIN_PASSWORD, make_user


def test_login_sets_cookie(client, admin):
    response = client.post("/api/auth/login", json={"username": "ADMIN", "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["username"] == "admin"
    assert user["role"] == "admin"
    assert "hashedPassword" not in user
    assert "auth_token" in response.cookies


def test_login_failures(client, admin):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid username or password"}

    response = client.post("/api/auth/login", json={"username": "nobody", "password": "x"})
    assert response.status_code == 401

    response = client.post("/api/auth/login", json={"username": "admin"})
    assert response.status_code == 400


def test_me_and_logout(admin_client):
    response = admin_client.get("/api/auth/me")
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "admin"

    assert admin_client.post("/api/auth/logout").status_code == 200
    response = admin_client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"user": None}


def test_deleted_user_session_is_rejected(admin_client, db, admin):
    db.delete(db.query(User).filter(User.id == admin.id).first())
    db.commit()
    assert admin_client.get("/api/employees").status_code == 401


def test_legacy_string_location_is_returned_as_list(client, db):
    user = make_user(db, "legacy", "legacypass", name="Legacy")
    user.location = "Depot"
    db.commit()
    client.post("/api/auth/login", json={"username": "legacy", "password": "legacypass"})
    assert client.get("/api/auth/me").json()["user"]["location"] == ["Depot"]


def test_setup_flow(client, db):
    assert client.get("/api/setup/status").json() == {"needsSetup": True}

    response = client.post("/api/setup/create-admin", json={"username": "Owner", "password": "ownerpass"})
    assert response.status_code == 200
    assert response.json() == {"success": True}

    owner = db.query(User).filter(User.username == "owner").first()
    assert owner.role == UserRole.ADMIN.value
    assert client.get("/api/setup/status").json() == {"needsSetup": False}

    response = client.post("/api/setup/create-admin", json={"username": "second", "password": "secondpass"})
    assert response.status_code == 409
    assert db.query(User).count() == 1


def test_setup_validation(client):
    response = client.post("/api/setup/create-admin", json={"username": "owner", "password": "123"})
    assert response.status_code == 400
    assert "password" in response.json()["issues"]


def test_setup_not_needed_when_admin_exists(client, admin):
    assert client.get("/api/setup/status").json() == {"needsSetup": False}
    response = client.post("/api/setup/create-admin", json={"username": "owner", "password": "ownerpass"})
    assert response.status_code == 409


def test_debug_endpoint_hidden_outside_development(client):
    response = client.get("/api/debug/users")
    assert response.status_code == 404
    assert response.json() == {"error": "Not available"}


def test_debug_endpoint_in_development(client, admin, monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    response = client.get("/api/debug/users")
    assert response.status_code == 200
    assert response.json()["users"][0]["username"] == "admin"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"
