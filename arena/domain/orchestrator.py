"""Encounter runs — drive the narrative agent and republish its output as events.

A run moves the encounter setup -> active -> completed. Any failure part-way
sends it back to setup so it can be retried; the transcript is stored only
when the whole run succeeds.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arena.domain import encounter as encounter_mod
from arena.infra.config import settings
from arena.models.db_models import User
from arena.modules.llm.agent import NarrativeAgent, TextDelta
from arena.modules.llm.prompts import build_directive
from arena.modules.sse.codec import encode_event

logger = logging.getLogger("arena-core.orchestrator")


# --- Rejections (raised before any stream is opened) ---


class RunRejected(Exception):
    status_code = 400


class EncounterNotFound(RunRejected):
    status_code = 404


class Forbidden(RunRejected):
    status_code = 403


class AlreadyRun(RunRejected):
    status_code = 409


# --- Wire events ---


@dataclass(frozen=True)
class StreamEvent:
    id: int
    event: str  # "status" | "chunk" | "tool-result" | "error"
    data: dict = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.event == "error" or (
            self.event == "status" and self.data.get("status") == "completed"
        )

    def encode(self) -> str:
        return encode_event(self.event, self.data, self.id)


# --- In-flight runs ---


class RunRegistry:
    """Runs still executing in this process, keyed by encounter id.

    Holding the task here keeps a run alive after its client disconnects.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def is_running(self, encounter_id: str) -> bool:
        task = self._tasks.get(encounter_id)
        return task is not None and not task.done()

    def add(self, encounter_id: str, task: asyncio.Task) -> None:
        self._tasks[encounter_id] = task
        task.add_done_callback(lambda _: self._discard(encounter_id, task))

    def _discard(self, encounter_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(encounter_id) is task:
            del self._tasks[encounter_id]

    async def wait_all(self, timeout: float | None = None) -> None:
        """Wait for live runs; cancel whatever is still going after ``timeout``."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning("Cancelling %d runs still active at shutdown", len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)


# Module-level singleton
run_registry = RunRegistry()


@dataclass(frozen=True)
class RunRequest:
    encounter_id: str
    user_id: str
    scenario: str


async def prepare_run(
    db: AsyncSession,
    encounter_id: str,
    user: User,
    registry: RunRegistry = run_registry,
) -> RunRequest:
    """Check that ``user`` may run the encounter now. No side effects."""
    encounter = await encounter_mod.get_encounter(db, encounter_id)
    if encounter is None:
        raise EncounterNotFound("Encounter not found")
    if encounter.created_by != user.id and user.role != "admin":
        raise Forbidden("Forbidden")
    if registry.is_running(encounter_id) or await encounter_mod.has_transcript(db, encounter_id):
        raise AlreadyRun("Combat already ran for this encounter")
    return RunRequest(
        encounter_id=encounter.id,
        user_id=user.id,
        scenario=encounter.description or encounter.name,
    )


class EncounterRun:
    """One run of one encounter.

    The run executes as its own task and pushes events onto a queue;
    :meth:`events` drains it. Event ids count up from 0 within the run.
    """

    def __init__(
        self,
        request: RunRequest,
        agent: NarrativeAgent,
        session_factory: async_sessionmaker[AsyncSession],
        max_steps: int | None = None,
        registry: RunRegistry = run_registry,
    ) -> None:
        self.request = request
        self.agent = agent
        self.session_factory = session_factory
        self.max_steps = max_steps or settings.agent_max_steps
        self.registry = registry
        self.task: asyncio.Task | None = None
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._next_id = 0

    def start(self) -> EncounterRun:
        encounter_id = self.request.encounter_id
        if self.registry.is_running(encounter_id):
            raise AlreadyRun("Combat already ran for this encounter")
        self.task = asyncio.create_task(self._run(), name=f"encounter-run-{encounter_id}")
        self.registry.add(encounter_id, self.task)
        return self

    async def events(self) -> AsyncIterator[StreamEvent]:
        while True:
            event = await self._queue.get()
            yield event
            if event.is_terminal:
                return

    def _emit(self, event: str, **data: object) -> None:
        self._queue.put_nowait(StreamEvent(self._next_id, event, {"type": event, **data}))
        self._next_id += 1

    async def _set_status(self, status: str) -> None:
        async with self.session_factory() as db:
            await encounter_mod.set_status(db, self.request.encounter_id, status)
            await db.commit()

    async def _revert(self) -> None:
        try:
            await self._set_status("setup")
        except Exception:
            logger.exception(
                "Could not revert encounter %s to setup", self.request.encounter_id
            )

    async def _run(self) -> None:
        encounter_id = self.request.encounter_id
        logger.info("Encounter %s: run started", encounter_id)
        transcript: list[str] = []

        try:
            await self._set_status("active")
            self._emit("status", status="active")

            directive = build_directive(self.request.scenario)
            async for item in self.agent.stream(directive, self.max_steps):
                if isinstance(item, TextDelta):
                    transcript.append(item.delta)
                    self._emit("chunk", text=item.delta)
                else:
                    self._emit("tool-result", toolName=item.tool_name, result=item.payload)

            async with self.session_factory() as db:
                await encounter_mod.save_transcript(
                    db, encounter_id, self.request.user_id, "".join(transcript)
                )
                await encounter_mod.set_status(db, encounter_id, "completed")
                await db.commit()
        except asyncio.CancelledError:
            logger.warning("Encounter %s: run cancelled", encounter_id)
            await asyncio.shield(self._revert())
            self._emit("error", error="Combat run was cancelled")
            raise
        except Exception as exc:
            logger.error("Encounter %s: run failed", encounter_id, exc_info=True)
            await self._revert()
            self._emit("error", error=str(exc) or "Unknown error")
            return

        logger.info(
            "Encounter %s: run completed (%d events, %d chars)",
            encounter_id,
            self._next_id + 1,
            sum(len(part) for part in transcript),
        )
        self._emit("status", status="completed")


async def start_run(
    db: AsyncSession,
    encounter_id: str,
    user: User,
    agent: NarrativeAgent,
    session_factory: async_sessionmaker[AsyncSession],
    max_steps: int | None = None,
) -> EncounterRun:
    """Validate and launch a run. Raises RunRejected before anything is streamed."""
    request = await prepare_run(db, encounter_id, user)
    # End the read transaction; the run writes through its own sessions
    await db.commit()
    return EncounterRun(request, agent, session_factory, max_steps).start()
