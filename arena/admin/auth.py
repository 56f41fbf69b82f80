"""Admin authentication backend for sqladmin."""

from __future__ import annotations

from fastapi import HTTPException
from sqladmin.authentication import AuthenticationBackend
from sqlalchemy import select
from starlette.requests import Request

from arena.infra.auth import (
    create_access_token,
    decode_access_token,
    hash_api_key,
    verify_password,
)
from arena.infra.db import async_session_factory
from arena.models.db_models import User


def _active_admin():  # type: ignore[no-untyped-def]
    return select(User).where(User.role == "admin", User.is_active == True)  # noqa: E712


class AdminAuth(AuthenticationBackend):
    """Log admins in by password or API key; the session holds a JWT."""

    async def login(self, request: Request) -> bool:
        form = await request.form()
        username = str(form.get("username", "")).strip()
        secret = str(form.get("password", ""))
        if not secret:
            return False

        async with async_session_factory() as db:
            user = None

            if username:
                result = await db.execute(_active_admin().where(User.username == username))
                candidate = result.scalar_one_or_none()
                if candidate and candidate.password_hash and verify_password(
                    secret, candidate.password_hash
                ):
                    user = candidate

            # The password field also accepts a raw API key
            if user is None:
                result = await db.execute(
                    _active_admin().where(User.api_key_hash == hash_api_key(secret))
                )
                user = result.scalar_one_or_none()

            if user is None:
                return False

            request.session["token"] = create_access_token(user.id).access_token
            request.session["user_id"] = user.id
            return True

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> bool:
        token = request.session.get("token")
        if not token:
            return False
        try:
            token_data = decode_access_token(token)
        except HTTPException:
            return False

        async with async_session_factory() as db:
            result = await db.execute(_active_admin().where(User.id == token_data.user_id))
            return result.scalar_one_or_none() is not None
