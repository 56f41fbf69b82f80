"""Admin dashboard — setup and configuration for sqladmin."""

from __future__ import annotations

from fastapi import FastAPI
from sqladmin import Admin

from arena.admin.auth import AdminAuth
from arena.admin.views import ChatMessageAdmin, EncounterAdmin, UserAdmin
from arena.infra.config import settings
from arena.infra.db import engine


def setup_admin(app: FastAPI) -> Admin:
    """Configure and mount the sqladmin dashboard on the FastAPI app."""
    authentication_backend = AdminAuth(secret_key=settings.jwt_secret_key)

    admin = Admin(
        app=app,
        engine=engine,
        authentication_backend=authentication_backend,
        base_url="/admin",
        title="Arena Admin",
    )

    admin.add_view(UserAdmin)
    admin.add_view(EncounterAdmin)
    admin.add_view(ChatMessageAdmin)

    return admin
