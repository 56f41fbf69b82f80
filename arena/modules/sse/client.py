"""Client for encounter run streams.

Tells apart the three ways a stream can end: a terminal ``status=completed``
event, an explicit ``error`` event, and the connection simply closing.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx

from arena.modules.sse.codec import SSEMessage, iter_events


class RunFailed(Exception):
    """The server reported an application-level error for the run."""


class ConnectionLost(Exception):
    """The stream ended without a terminal event."""


class RunAlreadyStarted(Exception):
    """This client already started a run for the encounter."""


class ArenaStreamClient:
    """Starts encounter runs over an authenticated ``httpx.AsyncClient``.

    Starts at most one run per encounter for the lifetime of the client. A run
    that failed with an explicit error may be started again, since the server
    has put the encounter back into setup. After a lost connection the
    transcript should be fetched instead.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client
        self._started: set[str] = set()

    def has_started(self, encounter_id: str) -> bool:
        return encounter_id in self._started

    async def run(self, encounter_id: str) -> AsyncIterator[SSEMessage]:
        if encounter_id in self._started:
            raise RunAlreadyStarted(encounter_id)
        self._started.add(encounter_id)

        try:
            async with self._client.stream(
                "GET",
                f"/api/encounters/{encounter_id}/run",
                headers={"Accept": "text/event-stream"},
            ) as resp:
                if resp.status_code != 200:
                    await resp.aread()
                    self._started.discard(encounter_id)
                    resp.raise_for_status()

                async for message in iter_events(resp.aiter_lines()):
                    if message.event == "error":
                        self._started.discard(encounter_id)
                        raise RunFailed(message.json().get("error", "Unknown error"))
                    yield message
                    if message.event == "status" and message.json().get("status") == "completed":
                        return
        except httpx.TransportError as exc:
            raise ConnectionLost(str(exc)) from exc

        raise ConnectionLost("Stream closed before the encounter finished")

    async def transcript(self, encounter_id: str) -> list[dict]:
        resp = await self._client.get(f"/api/encounters/{encounter_id}/messages")
        resp.raise_for_status()
        return resp.json()["messages"]
