"""Narrative agent abstraction — OpenAI-compatible, Anthropic, and Mock tool-callers.

An agent takes a directive and a step budget and yields an ordered stream of
text deltas and tool results. It decides on its own when to call the engine
tools; callers only see the items.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import httpx

from arena.infra.config import settings
from arena.modules.dice.rng import RandomSource
from arena.modules.llm.prompts import ARENA_MASTER_SYSTEM
from arena.modules.llm.tools import ToolRegistry

logger = logging.getLogger("arena-core.agent")


@dataclass(frozen=True)
class TextDelta:
    delta: str


@dataclass(frozen=True)
class ToolResult:
    tool_name: str
    payload: dict = field(default_factory=dict)


AgentItem = TextDelta | ToolResult


class AgentError(RuntimeError):
    """Generation failed part-way (provider or transport error)."""


class NarrativeAgent(ABC):
    def __init__(self, tools: ToolRegistry | None = None) -> None:
        self.tools = tools or ToolRegistry()

    @abstractmethod
    def stream(self, directive: str, max_steps: int) -> AsyncIterator[AgentItem]:
        """Yield items in the order they are produced."""

    def _run_tool(self, name: str, raw_arguments: str | dict) -> dict:
        if isinstance(raw_arguments, str):
            try:
                raw_arguments = json.loads(raw_arguments or "{}")
            except json.JSONDecodeError as exc:
                return {"error": f"Arguments are not valid JSON: {exc}"}
        return self.tools.execute(name, raw_arguments)


class OpenAIAgent(NarrativeAgent):
    """OpenAI-compatible chat completions with streamed text and tool calls."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        tools: ToolRegistry | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(tools)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.transport = transport

    def _tool_specs(self) -> list[dict]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters(),
                },
            }
            for tool in self.tools.definitions()
        ]

    async def stream(self, directive: str, max_steps: int) -> AsyncIterator[AgentItem]:
        messages: list[dict] = [
            {"role": "system", "content": ARENA_MASTER_SYSTEM},
            {"role": "user", "content": directive},
        ]
        tool_specs = self._tool_specs()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                for _ in range(max_steps):
                    text_parts: list[str] = []
                    calls: dict[int, dict[str, str]] = {}

                    async with client.stream(
                        "POST",
                        f"{self.base_url}/chat/completions",
                        headers={"Authorization": f"Bearer {self.api_key}"},
                        json={
                            "model": self.model,
                            "messages": messages,
                            "tools": tool_specs,
                            "stream": True,
                        },
                    ) as resp:
                        resp.raise_for_status()
                        async for line in resp.aiter_lines():
                            if not line.startswith("data:"):
                                continue
                            data = line[5:].strip()
                            if data == "[DONE]":
                                break
                            chunk = json.loads(data)
                            if not chunk.get("choices"):
                                continue
                            delta = chunk["choices"][0].get("delta") or {}

                            if delta.get("content"):
                                text_parts.append(delta["content"])
                                yield TextDelta(delta["content"])

                            for call in delta.get("tool_calls") or []:
                                slot = calls.setdefault(
                                    call.get("index", 0),
                                    {"id": "", "name": "", "arguments": ""},
                                )
                                slot["id"] = call.get("id") or slot["id"]
                                function = call.get("function") or {}
                                slot["name"] += function.get("name") or ""
                                slot["arguments"] += function.get("arguments") or ""

                    if not calls:
                        return

                    ordered = [calls[index] for index in sorted(calls)]
                    messages.append({
                        "role": "assistant",
                        "content": "".join(text_parts) or None,
                        "tool_calls": [
                            {
                                "id": call["id"],
                                "type": "function",
                                "function": {"name": call["name"], "arguments": call["arguments"]},
                            }
                            for call in ordered
                        ],
                    })
                    for call in ordered:
                        result = self._run_tool(call["name"], call["arguments"])
                        yield ToolResult(call["name"], result)
                        messages.append({
                            "role": "tool",
                            "tool_call_id": call["id"],
                            "content": json.dumps(result),
                        })

                logger.warning("Agent stopped after exhausting %d steps", max_steps)
        except (httpx.HTTPError, json.JSONDecodeError) as exc:
            raise AgentError(f"LLM request failed: {exc}") from exc


class AnthropicAgent(NarrativeAgent):
    """Anthropic Messages API with tool use, one request per step."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5-20250929",
        tools: ToolRegistry | None = None,
        timeout: float = 120.0,
        max_tokens: int = 4096,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(tools)
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.transport = transport

    async def stream(self, directive: str, max_steps: int) -> AsyncIterator[AgentItem]:
        messages: list[dict] = [{"role": "user", "content": directive}]
        tool_specs = [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.parameters(),
            }
            for tool in self.tools.definitions()
        ]

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                for _ in range(max_steps):
                    resp = await client.post(
                        "https://api.anthropic.com/v1/messages",
                        headers={
                            "x-api-key": self.api_key,
                            "anthropic-version": "2023-06-01",
                            "content-type": "application/json",
                        },
                        json={
                            "model": self.model,
                            "max_tokens": self.max_tokens,
                            "system": ARENA_MASTER_SYSTEM,
                            "messages": messages,
                            "tools": tool_specs,
                        },
                    )
                    resp.raise_for_status()
                    content = resp.json().get("content", [])

                    tool_results: list[dict] = []
                    for block in content:
                        if block.get("type") == "text" and block.get("text"):
                            yield TextDelta(block["text"])
                        elif block.get("type") == "tool_use":
                            result = self._run_tool(block["name"], block.get("input") or {})
                            yield ToolResult(block["name"], result)
                            tool_results.append({
                                "type": "tool_result",
                                "tool_use_id": block["id"],
                                "content": json.dumps(result),
                            })

                    if not tool_results:
                        return

                    messages.append({"role": "assistant", "content": content})
                    messages.append({"role": "user", "content": tool_results})

                logger.warning("Agent stopped after exhausting %d steps", max_steps)
        except (httpx.HTTPError, json.JSONDecodeError) as exc:
            raise AgentError(f"LLM request failed: {exc}") from exc


# --- Offline agent ---

_SIDE_SPLIT = re.compile(r"\s+(?:vs\.?|versus|against)\s+", re.IGNORECASE)
_NAME_SPLIT = re.compile(r"\s*(?:,|\band\b|&)\s*", re.IGNORECASE)

DEFAULT_HEROES = ["Valiant Knight"]
DEFAULT_MONSTERS = ["Goblin Raider"]


def parse_sides(scenario: str) -> tuple[list[str], list[str]]:
    """Split "A and B vs C" into two lists of names; fall back to a stock duel."""
    parts = _SIDE_SPLIT.split(scenario.strip(), maxsplit=1)
    if len(parts) != 2:
        return list(DEFAULT_HEROES), list(DEFAULT_MONSTERS)

    def names(text: str) -> list[str]:
        text = text.strip().strip(".!?\"'")
        return [n.strip() for n in _NAME_SPLIT.split(text) if n.strip()][:4]

    heroes, monsters = names(parts[0]), names(parts[1])
    if not heroes or not monsters:
        return list(DEFAULT_HEROES), list(DEFAULT_MONSTERS)
    return heroes, monsters


class _StepBudgetSpent(Exception):
    pass


class MockAgent(NarrativeAgent):
    """Scripted Arena Master that runs a real fight with the real tools.

    Every tool call counts as one step. Deterministic for a seeded registry.
    """

    def __init__(
        self,
        tools: ToolRegistry | None = None,
        scenario: str | None = None,
        max_rounds: int = 20,
    ) -> None:
        super().__init__(tools)
        self.scenario = scenario
        self.max_rounds = max_rounds

    async def stream(self, directive: str, max_steps: int) -> AsyncIterator[AgentItem]:
        try:
            async for item in self._script(directive, max_steps):
                yield item
        except _StepBudgetSpent:
            logger.warning("Agent stopped after exhausting %d steps", max_steps)

    async def _script(self, directive: str, max_steps: int) -> AsyncIterator[AgentItem]:
        match = re.search(r'scenario: "([^"]*)"', directive)
        scenario = self.scenario or (match.group(1) if match else directive)
        heroes, monsters = parse_sides(scenario)
        steps = 0

        def call(name: str, arguments: dict) -> ToolResult:
            nonlocal steps
            if steps >= max_steps:
                raise _StepBudgetSpent
            steps += 1
            return ToolResult(name, self.tools.execute(name, arguments))

        yield TextDelta("**The arena gates grind open.** The crowd roars as the combatants take the sand.\n\n")

        fighters: list[dict] = []
        for side, names, kind in (("heroes", heroes, "player"), ("monsters", monsters, "monster")):
            for name in names:
                yield TextDelta(f"**{name}** strides forward, sizing up the opposition.\n\n")
                item = call("generateStatBlock", {"name": name, "type": kind, "challengeRating": 1})
                yield item
                fighters.append({"side": side, "block": item.payload, "hp": item.payload["hitPoints"]})
                await asyncio.sleep(0)

        yield TextDelta("Steel is drawn. **Roll for initiative!**\n\n")
        for fighter in fighters:
            dex = fighter["block"]["abilityScores"]["dexterity"]
            dex_mod = (dex - 10) // 2
            item = call(
                "rollDice",
                {"notation": f"1d20{dex_mod:+d}", "purpose": f"initiative ({fighter['block']['name']})"},
            )
            yield item
            fighter["initiative"] = item.payload["total"]
            await asyncio.sleep(0)

        order = sorted(fighters, key=lambda f: f["initiative"], reverse=True)
        yield TextDelta(
            "Turn order: " + ", ".join(f"{f['block']['name']} ({f['initiative']})" for f in order) + ".\n\n"
        )

        def standing(side: str) -> list[dict]:
            return [f for f in fighters if f["side"] == side and f["hp"] > 0]

        for round_no in range(1, self.max_rounds + 1):
            if not standing("heroes") or not standing("monsters"):
                break
            yield TextDelta(f"**Round {round_no}**\n\n")

            for fighter in order:
                if fighter["hp"] <= 0:
                    continue
                foes = standing("monsters" if fighter["side"] == "heroes" else "heroes")
                if not foes:
                    break
                target = min(foes, key=lambda f: f["hp"])
                attack = fighter["block"]["attacks"][0]
                name, target_name = fighter["block"]["name"], target["block"]["name"]
                yield TextDelta(f"{name} lunges at {target_name} with a {attack['name'].lower()}.\n\n")

                item = call("resolveAttack", {
                    "attackerName": name,
                    "targetName": target_name,
                    "toHitBonus": attack["toHitBonus"],
                    "targetAC": target["block"]["armorClass"],
                    "damageDice": attack["damageDice"],
                    "damageType": attack["damageType"],
                })
                yield item
                await asyncio.sleep(0)

                target["hp"] = max(0, target["hp"] - item.payload.get("totalDamage", 0))
                if item.payload.get("hit"):
                    if target["hp"] == 0:
                        yield TextDelta(f"**{target_name} collapses and does not rise!**\n\n")
                    else:
                        yield TextDelta(f"{target_name} staggers, {target['hp']} HP left.\n\n")
                else:
                    yield TextDelta(f"{target_name} slips aside.\n\n")

            table = "\n".join(
                f"| {f['block']['name']} | {f['hp']}/{f['block']['maxHitPoints']} |" for f in fighters
            )
            yield TextDelta(f"| Combatant | HP |\n|---|---|\n{table}\n\n")

        if standing("heroes") and not standing("monsters"):
            yield TextDelta(f"**Victory!** {', '.join(heroes)} stand triumphant over the fallen.\n")
        elif standing("monsters") and not standing("heroes"):
            yield TextDelta(f"**Defeat!** {', '.join(monsters)} claim the arena.\n")
        else:
            yield TextDelta("**The horn sounds.** Both sides withdraw, bloodied and unbroken.\n")


def get_agent(rng: RandomSource | None = None) -> NarrativeAgent:
    """Factory: return the configured narrative agent."""
    tools = ToolRegistry(rng)
    provider_name = settings.llm_provider.lower()
    if provider_name == "openai":
        return OpenAIAgent(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            tools=tools,
            timeout=settings.llm_timeout_seconds,
        )
    elif provider_name == "anthropic":
        return AnthropicAgent(
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            tools=tools,
            timeout=settings.llm_timeout_seconds,
        )
    else:
        return MockAgent(tools=tools)
