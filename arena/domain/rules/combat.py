"""Combat rule — to-hit resolution, criticals, fumbles and damage."""

from __future__ import annotations

import logging
from dataclasses import replace

from arena.models.result import AttackOutcome
from arena.modules.dice.parser import InvalidNotation, parse_notation
from arena.modules.dice.rng import RandomSource, default_rng
from arena.modules.dice.selector import select

logger = logging.getLogger("arena-core.combat")


def _roll_damage(
    damage_dice: str, critical: bool, rng: RandomSource
) -> tuple[list[int], int]:
    """Roll damage; a critical doubles the dice count but not the modifier.

    Malformed notation yields no dice and zero damage.
    """
    try:
        spec = parse_notation(damage_dice)
    except InvalidNotation:
        logger.warning("Unparseable damage dice %r, dealing no damage", damage_dice)
        return [], 0

    if critical:
        spec = replace(spec, count=spec.count * 2)

    rolls = [rng.randint(1, spec.sides) for _ in range(spec.count)]
    total = max(0, sum(select(rolls, spec.selection)) + spec.modifier)
    return rolls, total


def _narrate(
    attacker_name: str,
    target_name: str,
    natural_roll: int,
    attack_roll: int,
    to_hit_bonus: int,
    target_ac: int,
    is_critical: bool,
    is_fumble: bool,
    hit: bool,
    total_damage: int,
    damage_type: str,
) -> str:
    roll_text = f"{attack_roll} ({natural_roll}{to_hit_bonus:+d})"
    if is_critical:
        return (
            f"⚔️ CRITICAL HIT! {attacker_name} rolls a natural 20 and strikes "
            f"{target_name} for {total_damage} {damage_type} damage!"
        )
    if is_fumble:
        return f"💨 Critical miss! {attacker_name} rolls a natural 1 and whiffs completely!"
    if hit:
        return (
            f"🎯 {attacker_name} rolls {roll_text} vs AC {target_ac}: hit! "
            f"{total_damage} {damage_type} damage to {target_name}."
        )
    return f"🛡️ {attacker_name} rolls {roll_text} vs AC {target_ac}: miss!"


def resolve_attack(
    attacker_name: str,
    target_name: str,
    to_hit_bonus: int,
    target_ac: int,
    damage_dice: str,
    damage_type: str,
    rng: RandomSource | None = None,
) -> AttackOutcome:
    """Resolve one attack: a d20 to hit against AC, then damage on a hit.

    A natural 20 always hits and a natural 1 always misses, whatever the
    bonus and AC. The narrative is a pure function of the rolls drawn.
    """
    rng = rng or default_rng()

    natural_roll = rng.randint(1, 20)
    attack_roll = natural_roll + to_hit_bonus
    is_critical = natural_roll == 20
    is_fumble = natural_roll == 1
    hit = is_critical or (not is_fumble and attack_roll >= target_ac)

    damage_rolls: list[int] = []
    total_damage = 0
    if hit:
        damage_rolls, total_damage = _roll_damage(damage_dice, is_critical, rng)

    return AttackOutcome(
        attacker_name=attacker_name,
        target_name=target_name,
        natural_roll=natural_roll,
        attack_roll=attack_roll,
        is_critical=is_critical,
        is_fumble=is_fumble,
        hit=hit,
        damage_rolls=damage_rolls,
        total_damage=total_damage,
        narrative=_narrate(
            attacker_name,
            target_name,
            natural_roll,
            attack_roll,
            to_hit_bonus,
            target_ac,
            is_critical,
            is_fumble,
            hit,
            total_damage,
            damage_type,
        ),
    )
