"""Auto-create default admin user on first launch."""

from __future__ import annotations

import logging

from sqlalchemy import select

from arena.infra.auth import generate_api_key, hash_password
from arena.infra.config import settings
from arena.models.db_models import User

logger = logging.getLogger("arena-core.init_admin")


async def ensure_default_admin(session_factory) -> User | None:
    """Create the default admin user if configured and not already present.

    Idempotent: if a user with the configured username already exists,
    logs a message and returns it unchanged.

    Args:
        session_factory: An async_sessionmaker to create DB sessions.
    """
    username = settings.default_admin_username.strip()
    if not username:
        logger.debug("DEFAULT_ADMIN_USERNAME not set — skipping default admin creation.")
        return None

    password = settings.default_admin_password
    email = settings.default_admin_email

    if not settings.app_debug and not password:
        logger.warning(
            "DEFAULT_ADMIN_PASSWORD is empty in non-debug mode. "
            "The admin user will only be accessible via API key."
        )

    async with session_factory() as db:
        result = await db.execute(select(User).where(User.username == username))
        existing = result.scalar_one_or_none()

        if existing is not None:
            logger.info(
                "Default admin user '%s' already exists (id=%s, role=%s). Skipping.",
                username,
                existing.id,
                existing.role,
            )
            return existing

        raw_api_key, api_key_hash = generate_api_key()

        user = User(
            username=username,
            email=email,
            api_key_hash=api_key_hash,
            password_hash=hash_password(password) if password else None,
            role="admin",
            is_active=True,
        )
        db.add(user)
        await db.commit()

        logger.info("=" * 60)
        logger.info("DEFAULT ADMIN USER CREATED")
        logger.info("  Username : %s", username)
        logger.info("  User ID  : %s", user.id)
        logger.info("  API Key  : %s", raw_api_key)
        if not password:
            logger.info("  Password : (not set — use API key for admin login)")
        logger.info("Save the API key above. It will NOT be shown again.")
        logger.info("=" * 60)
        return user
