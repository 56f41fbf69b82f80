"""Tests for the admin dashboard UI."""

import hashlib
from unittest.mock import AsyncMock, patch

import pytest
from starlette.testclient import TestClient

from arena.main import app


@pytest.fixture
def test_client():
    return TestClient(app, raise_server_exceptions=False)


def test_admin_login_page_loads(test_client):
    resp = test_client.get("/admin/login")
    assert resp.status_code == 200
    assert "password" in resp.text.lower()


@pytest.mark.parametrize("path", [
    "/admin/",
    "/admin/user/list",
    "/admin/encounter/list",
    "/admin/chat-message/list",
])
def test_admin_pages_redirect_without_auth(test_client, path):
    resp = test_client.get(path, follow_redirects=False)
    assert resp.status_code in (302, 303)
    assert "/admin/login" in resp.headers.get("location", "")


def _mock_session(user):
    result = type("Result", (), {"scalar_one_or_none": lambda self: user})()
    mock_db = AsyncMock()
    mock_db.execute = AsyncMock(return_value=result)
    mock_db.__aenter__ = AsyncMock(return_value=mock_db)
    mock_db.__aexit__ = AsyncMock(return_value=False)
    return mock_db


def _mock_admin(api_key):
    return type("User", (), {
        "id": "admin-001",
        "username": "Admin",
        "role": "admin",
        "is_active": True,
        "api_key_hash": hashlib.sha256(api_key.encode()).hexdigest(),
        "password_hash": None,
    })()


@patch("arena.admin.auth.async_session_factory")
def test_admin_login_rejects_unknown_user(mock_factory, test_client):
    mock_factory.return_value = _mock_session(None)
    resp = test_client.post(
        "/admin/login",
        data={"username": "anyone", "password": "wrong-key"},
        follow_redirects=False,
    )
    assert resp.status_code == 400


@patch("arena.admin.auth.async_session_factory")
def test_admin_login_accepts_api_key(mock_factory, test_client):
    api_key = "valid-admin-key-123"
    mock_factory.return_value = _mock_session(_mock_admin(api_key))
    resp = test_client.post(
        "/admin/login",
        data={"username": "Admin", "password": api_key},
        follow_redirects=False,
    )
    assert resp.status_code in (302, 303)
    location = resp.headers.get("location", "")
    assert "/admin" in location
    assert "/admin/login" not in location


@patch("arena.admin.auth.async_session_factory")
def test_admin_login_rejects_empty_password(mock_factory, test_client):
    resp = test_client.post(
        "/admin/login",
        data={"username": "admin", "password": ""},
        follow_redirects=False,
    )
    assert resp.status_code == 400
    mock_factory.assert_not_called()
