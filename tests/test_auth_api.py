import pytest
from fastapi.testclient import TestClient

from auth_service import main as auth_main
from auth_service.bootstrap import create_admin, main as bootstrap_main
from auth_service.db import SessionLocal
from auth_service.models import User
from auth_service.passwords import hash_password, verify_password
from shared.security import decode_token


@pytest.fixture
def client():
    return TestClient(auth_main.app)


@pytest.fixture
def admin_user():
    with SessionLocal() as db:
        return create_admin(db, "Admin@Example.com", "s3cret-pass")


def _login(client, email="admin@example.com", password="s3cret-pass"):
    return client.post("/auth/login", json={"email": email, "password": password})


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def test_password_hashing():
    h = hash_password("hunter2")
    assert verify_password("hunter2", h)
    assert not verify_password("hunter3", h)
    assert not verify_password("hunter2", None)


def test_login_returns_session_token(client, admin_user):
    r = _login(client)

    assert r.status_code == 200
    claims = decode_token(r.json()["access_token"])
    assert claims["email"] == "admin@example.com"
    assert claims["is_admin"] is True
    assert claims["sid"]


@pytest.mark.parametrize(
    "email, password",
    [("admin@example.com", "wrong"), ("nobody@example.com", "s3cret-pass")],
)
def test_login_failure_is_generic(client, admin_user, email, password):
    r = _login(client, email, password)

    assert r.status_code == 401
    assert r.json() == {"error": "Invalid email or password"}


def test_non_admin_cannot_log_in(client):
    with SessionLocal() as db:
        db.add(User(email="user@example.com", password_hash=hash_password("pw"), is_admin=False))
        db.commit()

    r = _login(client, "user@example.com", "pw")
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid email or password"}


def test_session_logout_and_refresh(client, admin_user):
    token = _login(client).json()["access_token"]

    r = client.get("/auth/session", headers=_auth(token))
    assert r.status_code == 200
    assert r.json()["email"] == "admin@example.com"

    refreshed = client.post("/auth/refresh", headers=_auth(token)).json()["access_token"]
    assert decode_token(refreshed)["sid"] == decode_token(token)["sid"]

    assert client.post("/auth/logout", headers=_auth(token)).json() == {"ok": True}

    assert client.get("/auth/session", headers=_auth(token)).status_code == 401
    assert client.get("/auth/session", headers=_auth(refreshed)).status_code == 401
    assert client.post("/auth/refresh", headers=_auth(token)).status_code == 401


def test_session_requires_token(client):
    assert client.get("/auth/session").status_code == 401
    assert client.get("/auth/session", headers=_auth("garbage")).status_code == 401


def test_create_admin_resets_existing(admin_user):
    with SessionLocal() as db:
        again = create_admin(db, "admin@example.com", "new-pass")
        assert again.id == admin_user.id
        assert verify_password("new-pass", again.password_hash)


def test_bootstrap_cli(capsys):
    assert bootstrap_main(["create-admin", "ops@example.com", "--password", "pw-123"]) == 0
    assert "admin ready: ops@example.com" in capsys.readouterr().out

    assert bootstrap_main(["create-admin", "ops@example.com", "--password", "x" * 100]) == 1
