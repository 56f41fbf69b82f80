"""Server-Sent Events framing."""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass


def encode_event(event: str, data: dict, event_id: int | str | None = None) -> str:
    """Format one SSE frame: optional id, event name, JSON data on one line, blank line."""
    lines = []
    if event_id is not None:
        lines.append(f"id: {event_id}")
    lines.append(f"event: {event}")
    # Escaped to ASCII: the data line never holds a line break character
    lines.append(f"data: {json.dumps(data)}")
    return "\n".join(lines) + "\n\n"


@dataclass
class SSEMessage:
    event: str = "message"
    data: str = ""
    id: str | None = None

    def json(self) -> dict:
        return json.loads(self.data) if self.data else {}


async def iter_events(lines: AsyncIterable[str]) -> AsyncIterator[SSEMessage]:
    """Parse SSE frames from a line iterator (line endings already stripped).

    A frame cut off by the end of the stream is discarded, as browsers do.
    """
    event: str | None = None
    data: list[str] = []
    last_id: str | None = None

    async for raw in lines:
        line = raw.rstrip("\r")
        if not line:
            if data or event:
                yield SSEMessage(event=event or "message", data="\n".join(data), id=last_id)
            event, data = None, []
            continue
        if line.startswith(":"):
            continue

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
        elif name == "id":
            last_id = value
