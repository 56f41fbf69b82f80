"""Dice notation parser — supports NdM, NdM+X, NdMkhK / klK / dhK / dlK."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from arena.modules.dice import selector
from arena.modules.dice.rng import RandomSource, default_rng
from arena.modules.dice.selector import Selection, SelectionKind, select


# Upper bound on dice drawn by one expression
MAX_DICE = 1000


class InvalidNotation(ValueError):
    """Raised when a string does not match the dice grammar."""

    def __init__(self, notation: str) -> None:
        super().__init__(f"Invalid dice notation: {notation}")
        self.notation = notation


@dataclass(frozen=True)
class DiceSpec:
    """A parsed dice expression."""

    count: int
    sides: int
    selection: Selection | None = None
    modifier: int = 0

    @property
    def notation(self) -> str:
        text = f"{self.count}d{self.sides}"
        if self.selection is not None:
            text += str(self.selection)
        if self.modifier:
            text += f"{self.modifier:+d}"
        return text


@dataclass
class RollResult:
    """Full result of evaluating a DiceSpec."""

    spec: DiceSpec
    rolls: list[int] = field(default_factory=list)  # generation order
    kept: list[int] = field(default_factory=list)
    total: int = 0
    purpose: str | None = None
    notation: str = ""

    @property
    def modifier(self) -> int:
        return self.spec.modifier

    @property
    def dropped(self) -> list[int]:
        return selector.dropped(self.rolls, self.spec.selection)

    def to_dict(self) -> dict:
        data = {
            "notation": self.notation or self.spec.notation,
            "rolls": list(self.rolls),
            "kept": list(self.kept),
            "modifier": self.modifier,
            "total": self.total,
        }
        if self.spec.selection is not None:
            data["dropped"] = self.dropped
        if self.purpose is not None:
            data["purpose"] = self.purpose
        return data


_DICE_PATTERN = re.compile(
    r"^(\d+)d(\d+)"  # NdM
    r"(?:(kh|kl|dh|dl)(\d+))?"  # optional keep/drop
    r"([+-]\d+)?$",  # optional +X or -X
    re.IGNORECASE,
)


def parse_notation(notation: str) -> DiceSpec:
    """Parse a dice notation string into a DiceSpec.

    Supported formats:
        2d6, 1d20      - plain dice
        2d6+3, 4d8-1   - with flat modifier
        2d20kh1+5      - keep highest (advantage)
        2d20kl1        - keep lowest (disadvantage)
        4d6dl1, 4d6dh1 - drop lowest / drop highest

    Whitespace is not accepted anywhere. The selector token is
    case-insensitive.

    Raises:
        InvalidNotation: If the string does not match the grammar, or the
            count or sides is zero, or the count exceeds MAX_DICE.
    """
    match = _DICE_PATTERN.match(notation)
    if match is None:
        raise InvalidNotation(notation)

    count = int(match.group(1))
    sides = int(match.group(2))
    if count < 1 or sides < 1 or count > MAX_DICE:
        raise InvalidNotation(notation)

    selection = None
    if match.group(3):
        selection = Selection(
            kind=SelectionKind(match.group(3).lower()),
            n=int(match.group(4)),
        )

    modifier = int(match.group(5)) if match.group(5) else 0

    return DiceSpec(count=count, sides=sides, selection=selection, modifier=modifier)


def evaluate(
    spec: DiceSpec,
    rng: RandomSource | None = None,
    purpose: str | None = None,
) -> RollResult:
    """Roll dice according to a DiceSpec and return the full result."""
    rng = rng or default_rng()
    rolls = [rng.randint(1, spec.sides) for _ in range(spec.count)]
    kept = select(rolls, spec.selection)
    return RollResult(
        spec=spec,
        rolls=rolls,
        kept=kept,
        total=sum(kept) + spec.modifier,
        purpose=purpose,
        notation=spec.notation,
    )


def roll_notation(
    notation: str,
    rng: RandomSource | None = None,
    purpose: str | None = None,
) -> RollResult:
    """Convenience: parse + evaluate in one call."""
    result = evaluate(parse_notation(notation), rng, purpose)
    result.notation = notation
    return result
