"""Encounter management — create, query, status transitions, transcripts."""

from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from arena.models.db_models import ChatMessage, Encounter, User

NAME_LENGTH = 100


async def create_encounter(db: AsyncSession, scenario: str, created_by: str) -> Encounter:
    encounter = Encounter(
        name=scenario[:NAME_LENGTH],
        description=scenario,
        status="setup",
        created_by=created_by,
    )
    db.add(encounter)
    await db.flush()
    return encounter


async def get_encounter(db: AsyncSession, encounter_id: str) -> Encounter | None:
    result = await db.execute(select(Encounter).where(Encounter.id == encounter_id))
    return result.scalar_one_or_none()


async def list_encounters(db: AsyncSession, user: User, limit: int = 50) -> list[Encounter]:
    """Newest first. Admins see every encounter, everyone else their own."""
    query = select(Encounter).order_by(Encounter.created_at.desc()).limit(limit)
    if user.role != "admin":
        query = query.where(Encounter.created_by == user.id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_messages(db: AsyncSession, encounter_id: str) -> list[ChatMessage]:
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.encounter_id == encounter_id)
        .order_by(ChatMessage.created_at)
    )
    return list(result.scalars().all())


async def has_transcript(db: AsyncSession, encounter_id: str) -> bool:
    result = await db.execute(
        select(ChatMessage.id).where(ChatMessage.encounter_id == encounter_id).limit(1)
    )
    return result.first() is not None


async def set_status(db: AsyncSession, encounter_id: str, status: str) -> Encounter:
    encounter = await get_encounter(db, encounter_id)
    if encounter is None:
        raise ValueError(f"Encounter {encounter_id} not found")
    encounter.status = status
    await db.flush()
    return encounter


async def save_transcript(
    db: AsyncSession, encounter_id: str, user_id: str, content: str
) -> ChatMessage:
    message = ChatMessage(
        encounter_id=encounter_id,
        user_id=user_id,
        role="assistant",
        content=content,
    )
    db.add(message)
    await db.flush()
    return message


async def delete_encounter(db: AsyncSession, encounter_id: str) -> bool:
    encounter = await get_encounter(db, encounter_id)
    if encounter is None:
        return False
    await db.execute(delete(ChatMessage).where(ChatMessage.encounter_id == encounter_id))
    await db.execute(delete(Encounter).where(Encounter.id == encounter_id))
    return True


async def get_stats(db: AsyncSession) -> dict:
    users_by_role = dict(
        (await db.execute(select(User.role, func.count()).group_by(User.role))).all()
    )
    total_encounters = (await db.execute(select(func.count()).select_from(Encounter))).scalar_one()
    active_encounters = (
        await db.execute(
            select(func.count()).select_from(Encounter).where(Encounter.status == "active")
        )
    ).scalar_one()
    return {
        "total_users": sum(users_by_role.values()),
        "total_encounters": total_encounters,
        "active_encounters": active_encounters,
        "users_by_role": {
            role: users_by_role.get(role, 0) for role in ("admin", "player", "spectator")
        },
    }
