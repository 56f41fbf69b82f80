"""Engine result schemas — stat blocks, attack outcomes, modifiers.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CombatantKind = Literal["player", "monster", "npc"]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class AbilityModifier(WireModel):
    score: int
    modifier: int
    modifier_string: str


class AbilityScores(WireModel):
    strength: int = Field(ge=1, le=30)
    dexterity: int = Field(ge=1, le=30)
    constitution: int = Field(ge=1, le=30)
    intelligence: int = Field(ge=1, le=30)
    wisdom: int = Field(ge=1, le=30)
    charisma: int = Field(ge=1, le=30)


class Attack(WireModel):
    name: str
    to_hit_bonus: int
    damage_dice: str
    damage_type: str


class Combatant(WireModel):
    """A generated stat block.

    Only ``hit_points``, ``conditions`` and ``is_alive`` are expected to
    change after creation, and that is narrative state tracked by the agent.
    """

    id: str
    name: str
    kind: CombatantKind = Field(alias="type")
    armor_class: int
    hit_points: int = Field(ge=1)
    max_hit_points: int = Field(ge=1)
    ability_scores: AbilityScores
    attacks: list[Attack] = []
    conditions: list[str] = []
    is_alive: bool = True


class AttackOutcome(WireModel):
    attacker_name: str
    target_name: str
    natural_roll: int = Field(ge=1, le=20)
    attack_roll: int
    is_critical: bool
    is_fumble: bool
    hit: bool
    damage_rolls: list[int] = []
    total_damage: int = Field(ge=0)
    narrative: str
