"""Tests for SSE framing and the run stream client."""

import httpx
import pytest

from arena.modules.sse.client import (
    ArenaStreamClient,
    ConnectionLost,
    RunAlreadyStarted,
    RunFailed,
)
from arena.modules.sse.codec import SSEMessage, encode_event, iter_events


async def _lines(text):
    for line in text.split("\n"):
        yield line


async def _parse(text):
    return [message async for message in iter_events(_lines(text))]


# --- Codec ---


def test_encode_event_frame():
    assert encode_event("status", {"type": "status", "status": "active"}, 0) == (
        'id: 0\nevent: status\ndata: {"type": "status", "status": "active"}\n\n'
    )


def test_encode_event_escapes_non_ascii_on_one_data_line():
    frame = encode_event("chunk", {"text": "⚔️ Clash\u2028again"})
    assert frame.startswith("event: chunk\n")
    assert frame.isascii()
    assert frame.count("data: ") == 1


async def test_iter_events_round_trips_unicode_line_separators():
    text = "Blade falls\x85hard\u2028and true"
    frame = encode_event("chunk", {"type": "chunk", "text": text}, 3)
    messages = await _parse(frame)
    assert messages[0].json() == {"type": "chunk", "text": text}


async def test_iter_events_round_trips_frames():
    text = encode_event("status", {"status": "active"}, 0) + encode_event("chunk", {"text": "a\nb"}, 1)
    messages = await _parse(text)
    assert [m.event for m in messages] == ["status", "chunk"]
    assert [m.id for m in messages] == ["0", "1"]
    assert messages[1].json() == {"text": "a\nb"}


async def test_iter_events_multiline_data_and_comments():
    messages = await _parse(": keep-alive\n\nevent: note\ndata: one\ndata: two\n\n")
    assert messages == [SSEMessage(event="note", data="one\ntwo", id=None)]


async def test_iter_events_discards_truncated_frame():
    messages = await _parse("event: chunk\ndata: {\"text\": \"ok\"}\n\nevent: chunk\ndata: {\"te")
    assert len(messages) == 1


async def test_iter_events_defaults_to_message_event():
    messages = await _parse("data: hi\n\n")
    assert messages[0].event == "message"


# --- Client ---


def _stream_client(handler):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://arena.test")
    return http, ArenaStreamClient(http)


def _frames(*events):
    return "".join(encode_event(name, {"type": name, **data}, i) for i, (name, data) in enumerate(events))


COMPLETE = _frames(
    ("status", {"status": "active"}),
    ("chunk", {"text": "Steel rings."}),
    ("tool-result", {"toolName": "rollDice", "result": {"total": 12}}),
    ("status", {"status": "completed"}),
)


async def test_client_reads_until_completed():
    def handler(request):
        assert request.url.path == "/api/encounters/enc1/run"
        assert request.headers["accept"] == "text/event-stream"
        return httpx.Response(200, text=COMPLETE, headers={"content-type": "text/event-stream"})

    http, client = _stream_client(handler)
    async with http:
        messages = [m async for m in client.run("enc1")]

    assert [m.event for m in messages] == ["status", "chunk", "tool-result", "status"]
    assert messages[-1].json()["status"] == "completed"
    assert client.has_started("enc1")


async def test_client_refuses_second_run():
    http, client = _stream_client(lambda request: httpx.Response(200, text=COMPLETE))
    async with http:
        async for _ in client.run("enc1"):
            pass
        with pytest.raises(RunAlreadyStarted):
            async for _ in client.run("enc1"):
                pass


async def test_client_raises_run_failed_and_allows_retry():
    body = _frames(("status", {"status": "active"}), ("error", {"error": "provider went away"}))
    http, client = _stream_client(lambda request: httpx.Response(200, text=body))
    async with http:
        with pytest.raises(RunFailed, match="provider went away"):
            async for _ in client.run("enc1"):
                pass
    assert not client.has_started("enc1")


async def test_client_detects_silent_close():
    body = _frames(("status", {"status": "active"}), ("chunk", {"text": "The ogre"}))
    http, client = _stream_client(lambda request: httpx.Response(200, text=body))
    seen = []
    async with http:
        with pytest.raises(ConnectionLost):
            async for message in client.run("enc1"):
                seen.append(message.event)
    assert seen == ["status", "chunk"]
    # A lost connection is not retried; the transcript is fetched instead
    assert client.has_started("enc1")


async def test_client_wraps_transport_errors():
    def handler(request):
        raise httpx.ReadError("connection reset", request=request)

    http, client = _stream_client(handler)
    async with http:
        with pytest.raises(ConnectionLost):
            async for _ in client.run("enc1"):
                pass


async def test_client_rejection_releases_guard():
    http, client = _stream_client(
        lambda request: httpx.Response(409, json={"detail": "Combat already ran for this encounter"})
    )
    async with http:
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            async for _ in client.run("enc1"):
                pass
    assert exc_info.value.response.status_code == 409
    assert not client.has_started("enc1")


async def test_client_transcript():
    def handler(request):
        assert request.url.path == "/api/encounters/enc1/messages"
        return httpx.Response(200, json={"messages": [{"role": "assistant", "content": "All done."}]})

    http, client = _stream_client(handler)
    async with http:
        assert await client.transcript("enc1") == [{"role": "assistant", "content": "All done."}]


async def test_client_parses_chunks_with_unicode_line_separators():
    text = "The axe\u2028bites deep\x85and holds."
    body = _frames(
        ("status", {"status": "active"}),
        ("chunk", {"text": text}),
        ("status", {"status": "completed"}),
    )
    http, client = _stream_client(lambda request: httpx.Response(200, text=body))
    async with http:
        messages = [m async for m in client.run("enc1")]
    assert [m.event for m in messages] == ["status", "chunk", "status"]
    assert messages[1].json()["text"] == text
