"""Engine capabilities exposed to the narrative agent as callable tools."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import Field, ValidationError

from arena.domain.rules.combat import resolve_attack
from arena.domain.rules.stat_block import ability_modifier, generate_stat_block
from arena.models.result import CombatantKind, WireModel
from arena.modules.dice.parser import InvalidNotation, roll_notation
from arena.modules.dice.rng import RandomSource, default_rng

logger = logging.getLogger("arena-core.tools")


# --- Input schemas ---


class RollDiceInput(WireModel):
    notation: str = Field(
        description="Dice notation, e.g. '2d6+3', '1d20', '2d20kh1+5' (advantage), "
        "'2d20kl1' (disadvantage), '4d6dl1' (drop lowest)"
    )
    purpose: str | None = Field(
        default=None, description="What the roll is for, e.g. 'initiative', 'damage'"
    )


class AbilityModifierInput(WireModel):
    score: int = Field(ge=1, le=30, description="The ability score (1-30)")


class GenerateStatBlockInput(WireModel):
    name: str = Field(description="Creature name")
    kind: CombatantKind = Field(alias="type", description="Creature type")
    challenge_rating: float | None = Field(
        default=None, description="Desired challenge rating (0-30)"
    )
    description: str | None = Field(
        default=None, description="Brief description to guide stat generation"
    )


class ResolveAttackInput(WireModel):
    attacker_name: str
    target_name: str
    to_hit_bonus: int = Field(description="Attacker's to-hit bonus")
    target_ac: int = Field(alias="targetAC", description="Target's armor class")
    damage_dice: str = Field(description="Damage dice notation, e.g. '2d6+3'")
    damage_type: str = Field(description="Damage type, e.g. 'slashing'")


# --- Registry ---


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_model: type[WireModel]
    handler: Callable[[Any, RandomSource], dict]

    def parameters(self) -> dict:
        return self.input_model.model_json_schema(by_alias=True)


def _roll_dice(args: RollDiceInput, rng: RandomSource) -> dict:
    return roll_notation(args.notation, rng, args.purpose).to_dict()


def _ability_modifier(args: AbilityModifierInput, rng: RandomSource) -> dict:
    return ability_modifier(args.score).to_wire()


def _generate_stat_block(args: GenerateStatBlockInput, rng: RandomSource) -> dict:
    return generate_stat_block(
        args.name,
        args.kind,
        args.challenge_rating,
        rng=rng,
        description=args.description,
    ).to_wire()


def _resolve_attack(args: ResolveAttackInput, rng: RandomSource) -> dict:
    return resolve_attack(
        args.attacker_name,
        args.target_name,
        args.to_hit_bonus,
        args.target_ac,
        args.damage_dice,
        args.damage_type,
        rng=rng,
    ).to_wire()


TOOLS: tuple[Tool, ...] = (
    Tool(
        name="rollDice",
        description=(
            "Roll dice using D&D notation. Supports basic ('2d6+3', '1d20'), "
            "advantage/disadvantage ('2d20kh1+5', '2d20kl1'), and drop ('4d6dl1'). "
            "Returns individual rolls, kept rolls, and total."
        ),
        input_model=RollDiceInput,
        handler=_roll_dice,
    ),
    Tool(
        name="abilityModifier",
        description="Calculate the D&D 5e ability modifier for a given ability score.",
        input_model=AbilityModifierInput,
        handler=_ability_modifier,
    ),
    Tool(
        name="generateStatBlock",
        description=(
            "Generate a D&D 5e stat block for a creature. Returns ability scores, "
            "HP, AC, and attacks."
        ),
        input_model=GenerateStatBlockInput,
        handler=_generate_stat_block,
    ),
    Tool(
        name="resolveAttack",
        description=(
            "Resolve a D&D 5e attack. Rolls to hit against target AC, then rolls "
            "damage if it hits. Natural 20 is a critical hit, natural 1 always misses."
        ),
        input_model=ResolveAttackInput,
        handler=_resolve_attack,
    ),
)


class ToolRegistry:
    """Validates tool arguments and runs the engine with a shared random source."""

    def __init__(self, rng: RandomSource | None = None, tools: tuple[Tool, ...] = TOOLS) -> None:
        self.rng = rng or default_rng()
        self._tools = {tool.name: tool for tool in tools}

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def definitions(self) -> list[Tool]:
        return list(self._tools.values())

    def execute(self, name: str, arguments: dict) -> dict:
        """Run a tool. Bad input comes back as ``{"error": ...}`` for the model to see."""
        tool = self._tools.get(name)
        if tool is None:
            return {"error": f"Unknown tool: {name}"}
        try:
            args = tool.input_model.model_validate(arguments)
            result = tool.handler(args, self.rng)
        except (ValidationError, InvalidNotation) as exc:
            logger.debug("Tool %s rejected arguments %r: %s", name, arguments, exc)
            return {"error": str(exc)}
        logger.debug("Tool %s(%r) -> %r", name, arguments, result)
        return result
