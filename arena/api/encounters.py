"""Encounter API — create encounters, run combat over SSE, read transcripts."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arena.domain import encounter as encounter_mod
from arena.domain import orchestrator
from arena.infra.auth import get_current_user, require_role
from arena.infra.db import get_db, get_session_factory
from arena.models.db_models import ChatMessage, Encounter, User
from arena.modules.llm.agent import NarrativeAgent, get_agent

router = APIRouter(prefix="/api/encounters", tags=["encounters"])


def get_narrative_agent() -> NarrativeAgent:
    """Dependency: the configured agent, fresh per run."""
    return get_agent()


# --- Request schemas ---


class CreateEncounterRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)


# --- Serializers ---


def _encounter_dict(encounter: Encounter) -> dict:
    return {
        "encounter_id": encounter.id,
        "name": encounter.name,
        "description": encounter.description,
        "status": encounter.status,
        "created_by": encounter.created_by,
        "created_at": encounter.created_at.isoformat(),
        "updated_at": encounter.updated_at.isoformat(),
    }


def _message_dict(message: ChatMessage) -> dict:
    return {
        "message_id": message.id,
        "encounter_id": message.encounter_id,
        "role": message.role,
        "content": message.content,
        "created_at": message.created_at.isoformat(),
    }


async def _get_visible_encounter(
    db: AsyncSession, encounter_id: str, user: User, allow_spectators: bool = False
) -> Encounter:
    encounter = await encounter_mod.get_encounter(db, encounter_id)
    if encounter is None:
        raise HTTPException(status_code=404, detail="Encounter not found")
    if user.role == "admin" or encounter.created_by == user.id:
        return encounter
    if allow_spectators and user.role == "spectator":
        return encounter
    raise HTTPException(status_code=403, detail="Forbidden")


# --- Endpoints ---


@router.get("")
async def list_encounters(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    encounters = await encounter_mod.list_encounters(db, user)
    return {"encounters": [_encounter_dict(e) for e in encounters]}


@router.post("")
async def create_encounter(
    req: CreateEncounterRequest,
    user: Annotated[User, Depends(require_role("player"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Create an encounter from a scenario. No agent call happens here."""
    encounter = await encounter_mod.create_encounter(db, req.message, user.id)
    return _encounter_dict(encounter)


@router.get("/{encounter_id}")
async def get_encounter(
    encounter_id: str,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    encounter = await _get_visible_encounter(db, encounter_id, user)
    return _encounter_dict(encounter)


@router.get("/{encounter_id}/run")
async def run_encounter(
    encounter_id: str,
    user: Annotated[User, Depends(require_role("player"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    agent: Annotated[NarrativeAgent, Depends(get_narrative_agent)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> StreamingResponse:
    """Run the full combat and stream it as Server-Sent Events.

    Events: ``status`` (active/completed), ``chunk`` (narrative text),
    ``tool-result`` (engine output), ``error``. Each carries an increasing id
    from 0. Rejected with 404/403/409 before the stream opens.
    """
    try:
        run = await orchestrator.start_run(db, encounter_id, user, agent, session_factory)
    except orchestrator.RunRejected as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))

    async def _frames():  # type: ignore[no-untyped-def]
        async for event in run.events():
            yield event.encode()

    return StreamingResponse(
        _frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/{encounter_id}/messages")
async def get_messages(
    encounter_id: str,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Stored transcript. Reconnecting clients read this instead of re-running."""
    await _get_visible_encounter(db, encounter_id, user, allow_spectators=True)
    messages = await encounter_mod.get_messages(db, encounter_id)
    return {"messages": [_message_dict(m) for m in messages]}


@router.delete("/{encounter_id}")
async def delete_encounter(
    encounter_id: str,
    user: Annotated[User, Depends(require_role("admin"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    if not await encounter_mod.delete_encounter(db, encounter_id):
        raise HTTPException(status_code=404, detail="Encounter not found")
    return {"encounter_id": encounter_id, "status": "deleted"}
