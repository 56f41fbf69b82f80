"""Tools API — direct access to the dice and combat engine."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from arena.domain.rules.combat import resolve_attack
from arena.domain.rules.stat_block import ability_modifier, generate_stat_block
from arena.infra.auth import get_current_user
from arena.models.db_models import User
from arena.modules.dice.parser import InvalidNotation, roll_notation
from arena.modules.llm.tools import (
    AbilityModifierInput,
    GenerateStatBlockInput,
    ResolveAttackInput,
    RollDiceInput,
)

router = APIRouter(prefix="/api/tools", tags=["tools"])


@router.post("/roll")
async def roll(
    req: RollDiceInput,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    """Roll a dice expression, e.g. ``2d20kh1+5``."""
    try:
        result = roll_notation(req.notation, purpose=req.purpose)
    except InvalidNotation as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return result.to_dict()


@router.post("/ability-modifier")
async def get_ability_modifier(
    req: AbilityModifierInput,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    return ability_modifier(req.score).to_wire()


@router.post("/stat-block")
async def create_stat_block(
    req: GenerateStatBlockInput,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    return generate_stat_block(
        req.name, req.kind, req.challenge_rating, description=req.description
    ).to_wire()


@router.post("/attack")
async def attack(
    req: ResolveAttackInput,
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    return resolve_attack(
        req.attacker_name,
        req.target_name,
        req.to_hit_bonus,
        req.target_ac,
        req.damage_dice,
        req.damage_type,
    ).to_wire()
