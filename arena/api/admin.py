"""Admin API — user roles and system stats."""

from __future__ import annotations

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arena.domain import encounter as encounter_mod
from arena.infra.auth import require_role
from arena.infra.db import get_db
from arena.models.db_models import User

router = APIRouter(prefix="/api/admin", tags=["admin"])


class UpdateRoleRequest(BaseModel):
    role: Literal["admin", "player", "spectator"]


@router.get("/users")
async def list_users(
    admin: Annotated[User, Depends(require_role("admin"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    result = await db.execute(select(User).order_by(User.created_at))
    return {
        "users": [
            {
                "user_id": u.id,
                "username": u.username,
                "email": u.email,
                "role": u.role,
                "is_active": u.is_active,
                "created_at": u.created_at.isoformat(),
            }
            for u in result.scalars().all()
        ]
    }


@router.patch("/users/{user_id}/role")
async def update_role(
    user_id: str,
    req: UpdateRoleRequest,
    admin: Annotated[User, Depends(require_role("admin"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    user.role = req.role
    await db.flush()
    return {"user_id": user.id, "role": user.role}


@router.get("/stats")
async def get_stats(
    admin: Annotated[User, Depends(require_role("admin"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    return await encounter_mod.get_stats(db)
