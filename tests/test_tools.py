"""Tests for the agent tool registry."""

import random

from arena.modules.llm.tools import ToolRegistry
from tests.conftest import ScriptedRng


def test_definitions_expose_four_tools():
    registry = ToolRegistry()
    names = [tool.name for tool in registry.definitions()]
    assert names == ["rollDice", "abilityModifier", "generateStatBlock", "resolveAttack"]
    assert "rollDice" in registry
    assert "castFireball" not in registry


def test_parameters_use_wire_names():
    tools = {tool.name: tool for tool in ToolRegistry().definitions()}
    attack_props = tools["resolveAttack"].parameters()["properties"]
    assert set(attack_props) == {
        "attackerName", "targetName", "toHitBonus", "targetAC", "damageDice", "damageType",
    }
    block = tools["generateStatBlock"].parameters()
    assert "type" in block["properties"]
    assert set(block["required"]) == {"name", "type"}


def test_roll_dice():
    registry = ToolRegistry(ScriptedRng([8, 14]))
    result = registry.execute("rollDice", {"notation": "2d20kh1+5", "purpose": "attack"})
    assert result["rolls"] == [8, 14]
    assert result["kept"] == [14]
    assert result["total"] == 19
    assert result["purpose"] == "attack"


def test_roll_dice_invalid_notation_is_reported_not_raised():
    result = ToolRegistry().execute("rollDice", {"notation": "2d6 + 3"})
    assert result == {"error": "Invalid dice notation: 2d6 + 3"}


def test_ability_modifier():
    assert ToolRegistry().execute("abilityModifier", {"score": 7}) == {
        "score": 7, "modifier": -2, "modifierString": "-2",
    }


def test_ability_modifier_out_of_range():
    result = ToolRegistry().execute("abilityModifier", {"score": 31})
    assert "error" in result


def test_generate_stat_block():
    result = ToolRegistry(random.Random(2)).execute(
        "generateStatBlock",
        {"name": "Ogre", "type": "monster", "challengeRating": 2, "description": "big"},
    )
    assert result["name"] == "Ogre"
    assert result["type"] == "monster"
    assert result["hitPoints"] == result["maxHitPoints"]
    assert result["attacks"][0]["name"] == "Claw"


def test_generate_stat_block_rejects_unknown_type():
    result = ToolRegistry().execute("generateStatBlock", {"name": "Ooze", "type": "blob"})
    assert "error" in result


def test_resolve_attack():
    result = ToolRegistry(ScriptedRng([20, 3, 4])).execute("resolveAttack", {
        "attackerName": "Aria",
        "targetName": "Ogre",
        "toHitBonus": 4,
        "targetAC": 13,
        "damageDice": "1d8+2",
        "damageType": "piercing",
    })
    assert result["isCritical"] is True
    assert result["damageRolls"] == [3, 4]
    assert result["totalDamage"] == 9
    assert "piercing" in result["narrative"]


def test_unknown_tool():
    assert ToolRegistry().execute("castFireball", {}) == {"error": "Unknown tool: castFireball"}


def test_missing_arguments():
    result = ToolRegistry().execute("resolveAttack", {"attackerName": "Aria"})
    assert "error" in result
