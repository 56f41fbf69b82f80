"""arena-core — FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from importlib.metadata import version, PackageNotFoundError

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from arena.admin import setup_admin
from arena.api import admin, auth, encounters, tools
from arena.domain.orchestrator import run_registry
from arena.infra.config import settings
from arena.infra.db import async_session_factory, init_db
from arena.infra.init_admin import ensure_default_admin

logger = logging.getLogger("arena-core")

try:
    __version__ = version("arena-core")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
    if settings.db_auto_create:
        await init_db()
    try:
        await ensure_default_admin(async_session_factory)
    except Exception:
        logger.warning(
            "Could not create default admin user. "
            "Ensure Alembic migrations have been applied (`alembic upgrade head`).",
            exc_info=True,
        )
    yield
    # Runs outlive their streams; let them persist before the engine goes away
    await run_registry.wait_all(timeout=settings.run_shutdown_timeout_seconds)


app = FastAPI(
    title="arena-core",
    description="Arena — AI-narrated tabletop combat engine",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def custom_openapi() -> dict:  # type: ignore[no-untyped-def]
    """Add security schemes to OpenAPI schema."""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title="arena-core",
        version=__version__,
        description="Arena — AI-narrated tabletop combat engine",
        routes=app.routes,
    )

    components = openapi_schema.setdefault("components", {})
    components.setdefault("securitySchemes", {}).update({
        "bearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "JWT access token from /api/auth/register or login endpoints",
        },
        "apiKey": {
            "type": "apiKey",
            "in": "header",
            "name": "X-API-Key",
            "description": "API key returned once at registration",
        },
    })

    # get_current_user() parses headers by hand, so FastAPI can't tell
    # these routes are secured.
    for path, path_item in openapi_schema.get("paths", {}).items():
        if path.startswith(("/api/encounters", "/api/tools", "/api/admin")):
            for operation in path_item.values():
                if isinstance(operation, dict) and "security" not in operation:
                    operation["security"] = [
                        {"bearerAuth": []},
                        {"apiKey": []},
                    ]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(encounters.router)
app.include_router(tools.router)

setup_admin(app)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "engine": "arena-core", "version": __version__}
