"""Tests for default admin auto-creation."""

from unittest.mock import patch

from sqlalchemy import select

from arena.infra.auth import verify_password
from arena.infra.init_admin import ensure_default_admin
from arena.models.db_models import User


def _make_settings(**overrides):
    """Return a mock settings namespace with defaults."""
    defaults = {
        "default_admin_username": "",
        "default_admin_password": "",
        "default_admin_email": None,
        "app_debug": True,
    }
    defaults.update(overrides)

    class _S:
        pass

    s = _S()
    for k, v in defaults.items():
        setattr(s, k, v)
    return s


async def _count_users(factory):
    async with factory() as db:
        result = await db.execute(select(User))
        return len(result.scalars().all())


async def test_ensure_default_admin_creates_user(session_factory):
    with patch("arena.infra.init_admin.settings", _make_settings(
        default_admin_username="admin",
        default_admin_password="testpass123",
        default_admin_email="admin@test.com",
    )):
        created = await ensure_default_admin(session_factory)

    async with session_factory() as db:
        result = await db.execute(select(User).where(User.username == "admin"))
        user = result.scalar_one()
        assert user.id == created.id
        assert user.role == "admin"
        assert user.is_active is True
        assert len(user.api_key_hash) == 64  # SHA256 hex digest
        assert verify_password("testpass123", user.password_hash)
        assert user.email == "admin@test.com"


async def test_ensure_default_admin_skips_when_not_configured(session_factory):
    with patch("arena.infra.init_admin.settings", _make_settings(default_admin_username="")):
        assert await ensure_default_admin(session_factory) is None

    assert await _count_users(session_factory) == 0


async def test_ensure_default_admin_idempotent(session_factory):
    mock_settings = _make_settings(default_admin_username="admin", default_admin_password="pass")

    with patch("arena.infra.init_admin.settings", mock_settings):
        await ensure_default_admin(session_factory)
        await ensure_default_admin(session_factory)

    assert await _count_users(session_factory) == 1


async def test_ensure_default_admin_does_not_promote_existing_user(session_factory):
    async with session_factory() as db:
        db.add(User(username="admin", role="player", is_active=True))
        await db.commit()

    with patch("arena.infra.init_admin.settings", _make_settings(
        default_admin_username="admin",
        default_admin_password="pass",
    )):
        await ensure_default_admin(session_factory)

    async with session_factory() as db:
        result = await db.execute(select(User).where(User.username == "admin"))
        assert result.scalar_one().role == "player"


async def test_ensure_default_admin_without_password(session_factory):
    with patch("arena.infra.init_admin.settings", _make_settings(default_admin_username="admin")):
        await ensure_default_admin(session_factory)

    async with session_factory() as db:
        result = await db.execute(select(User).where(User.username == "admin"))
        user = result.scalar_one()
        assert user.password_hash is None
        assert user.api_key_hash is not None


async def test_ensure_default_admin_logs_api_key(session_factory, caplog):
    with (
        patch("arena.infra.init_admin.settings", _make_settings(
            default_admin_username="admin",
            default_admin_password="pass",
        )),
        caplog.at_level("INFO", logger="arena-core.init_admin"),
    ):
        await ensure_default_admin(session_factory)

    assert "DEFAULT ADMIN USER CREATED" in caplog.text
    assert "will NOT be shown again" in caplog.text
