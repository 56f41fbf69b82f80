"""Stat block rule — CR-scaled combatant generation and ability modifiers."""

from __future__ import annotations

import math
import uuid

from arena.models.result import (
    AbilityModifier,
    AbilityScores,
    Attack,
    Combatant,
    CombatantKind,
)
from arena.modules.dice.rng import RandomSource, default_rng

MAX_CR = 30
MAX_SCORE = 30
MAX_AC = 25


def ability_modifier(score: int) -> AbilityModifier:
    modifier = math.floor((score - 10) / 2)
    return AbilityModifier(
        score=score,
        modifier=modifier,
        modifier_string=f"+{modifier}" if modifier >= 0 else str(modifier),
    )


def damage_dice_for_cr(cr: float) -> str:
    """Primary attack dice by challenge-rating tier."""
    if cr <= 1:
        return "1d6"
    if cr <= 4:
        return "1d8"
    if cr <= 10:
        return "2d6"
    if cr <= 16:
        return "2d8"
    return "3d6"


def generate_stat_block(
    name: str,
    kind: CombatantKind,
    challenge_rating: float | None = None,
    rng: RandomSource | None = None,
    description: str | None = None,
) -> Combatant:
    """Generate a stat block scaled by challenge rating.

    Never fails: a challenge rating outside 0-30 is clamped, not rejected.
    ``description`` is accepted for the agent's benefit and does not affect
    the numbers.

    Args:
        name: Creature name.
        kind: "player", "monster" or "npc".
        challenge_rating: Desired CR, default 1.
        rng: Random source; the shared uniform source when omitted.
        description: Free-text flavour from the caller.

    Returns:
        A fresh Combatant at full hit points with no conditions.
    """
    rng = rng or default_rng()
    cr = max(0, min(MAX_CR, 1 if challenge_rating is None else challenge_rating))

    base_score = min(10 + cr, MAX_SCORE)
    hit_points = max(1, math.floor(10 + cr * 15 + rng.random() * 10))
    armor_class = min(10 + math.floor(cr * 0.8) + rng.randrange(0, 3), MAX_AC)
    proficiency_bonus = math.floor((cr - 1) / 4) + 2

    def physical() -> int:
        return int(min(base_score + rng.randrange(-2, 2), MAX_SCORE))

    def mental() -> int:
        return min(8 + rng.randrange(0, 6), MAX_SCORE)

    scores = AbilityScores(
        strength=physical(),
        dexterity=physical(),
        constitution=physical(),
        intelligence=mental(),
        wisdom=mental(),
        charisma=mental(),
    )

    str_mod = ability_modifier(scores.strength).modifier
    attack = Attack(
        name="Claw" if kind == "monster" else "Longsword",
        to_hit_bonus=str_mod + proficiency_bonus,
        damage_dice=f"{damage_dice_for_cr(cr)}{str_mod:+d}",
        damage_type="slashing",
    )

    return Combatant(
        id=f"creature-{uuid.uuid4().hex}",
        name=name,
        kind=kind,
        armor_class=armor_class,
        hit_points=hit_points,
        max_hit_points=hit_points,
        ability_scores=scores,
        attacks=[attack],
    )
