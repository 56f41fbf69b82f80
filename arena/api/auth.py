"""Auth API — registration and login."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arena.infra.auth import (
    authenticate_by_password,
    create_access_token,
    generate_api_key,
    get_current_user_jwt,
    hash_api_key,
    hash_password,
)
from arena.infra.config import settings
from arena.infra.db import get_db
from arena.models.db_models import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


# --- Request schemas ---


class RegisterRequest(BaseModel):
    username: str
    password: str | None = None
    email: str | None = None


class ApiKeyLoginRequest(BaseModel):
    api_key: str


class PasswordLoginRequest(BaseModel):
    username: str
    password: str


def _token_response(user: User) -> dict:
    token = create_access_token(user.id)
    return {
        "user_id": user.id,
        "role": user.role,
        "access_token": token.access_token,
        "expires_at": token.expires_at.isoformat(),
    }


# --- Endpoints ---


@router.post("/register")
async def register(
    req: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Register a new user. The API key is returned once and never again."""
    existing = await db.execute(select(User).where(User.username == req.username))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="Username already registered")

    raw_key, key_hash = generate_api_key()
    user = User(
        username=req.username,
        email=req.email,
        api_key_hash=key_hash,
        password_hash=hash_password(req.password) if req.password else None,
        role=settings.default_user_role,
    )
    db.add(user)
    await db.flush()

    return {**_token_response(user), "api_key": raw_key}


@router.post("/login/api-key")
async def login_by_api_key(
    req: ApiKeyLoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Login via API key. Returns JWT token."""
    result = await db.execute(select(User).where(User.api_key_hash == hash_api_key(req.api_key)))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid API key")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User account is deactivated")
    return _token_response(user)


@router.post("/login/password")
async def login_by_password(
    req: PasswordLoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Login via username + password. Returns JWT token."""
    user = await authenticate_by_password(db, req.username, req.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _token_response(user)


@router.get("/me")
async def get_me(
    user: Annotated[User, Depends(get_current_user_jwt)],
) -> dict:
    """Return the current authenticated user's profile."""
    return {
        "user_id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat(),
    }
