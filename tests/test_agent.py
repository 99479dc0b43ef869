"""Tests for the conversation manager (producer/core/agent.py).

The HTTP layer is replaced by a scripted fake httpx client: each
``stream()`` call serves the next scripted response as raw SSE bytes, so
the whole path (framing, accumulation, tool loop, re-entry) is exercised.
"""
from __future__ import annotations

import asyncio
import copy
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Union

import httpx
import pytest

from producer.config_store import AgentConfig
from producer.core.agent import (
    BUSY_MESSAGE,
    CANCELED_TOOL_RESULT,
    ConversationManager,
    get_conversation_manager,
    reset_conversation_manager,
)
from producer.core.llm_client import LLMClient
from producer.core.prompts import SYSTEM_PROMPT
from producer.core.tools.handlers import build_registry
from producer.daw.memory_host import InMemoryHost, Project
from producer.daw.samples import SampleLibrary
from producer.errors import API_KEY_MISSING_MESSAGE
from producer.protocol.events import (
    ContentDelta,
    ErrorOccurred,
    ProcessingFinished,
    ProducerEvent,
    ResponseReceived,
    ToolCallCompleted,
    ToolCallStarted,
)

DONE = b"data: [DONE]\n\n"


def _sse(obj: object) -> bytes:
    return b"data: " + json.dumps(obj).encode() + b"\n\n"


def _content(text: str) -> bytes:
    return _sse({"choices": [{"delta": {"content": text}}]})


def _tool(index: int, *, call_id: str = "", name: str = "", arguments: str = "") -> bytes:
    tc: dict = {"index": index, "function": {}}
    if call_id:
        tc["id"] = call_id
        tc["type"] = "function"
    if name:
        tc["function"]["name"] = name
    if arguments:
        tc["function"]["arguments"] = arguments
    return _sse({"choices": [{"delta": {"tool_calls": [tc]}}]})


class FakeResponse:
    def __init__(self, chunks: list[bytes], status_code: int = 200, body: bytes = b"", block: bool = False) -> None:
        self.chunks = chunks
        self.status_code = status_code
        self.body = body
        self.block = block

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            yield chunk
        if self.block:
            await asyncio.Event().wait()

    async def aread(self) -> bytes:
        return self.body


Scripted = Union[FakeResponse, Exception]


class ScriptedClient:
    """Stand-in for ``httpx.AsyncClient``; records request payloads."""

    def __init__(self, *responses: Scripted) -> None:
        self.responses = list(responses)
        self.payloads: list[dict] = []
        self.closed_streams = 0

    @asynccontextmanager
    async def stream(self, method: str, url: str, **kwargs: object) -> AsyncIterator[FakeResponse]:
        self.payloads.append(copy.deepcopy(kwargs["json"]))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        try:
            yield response
        finally:
            self.closed_streams += 1

    async def aclose(self) -> None:
        pass


@pytest.fixture
def host() -> InMemoryHost:
    return InMemoryHost(Project(), samples=SampleLibrary([]))


@pytest.fixture
def events() -> list[ProducerEvent]:
    return []


def _make_manager(
    host: InMemoryHost,
    tmp_path: Path,
    events: list[ProducerEvent],
    *responses: Scripted,
    api_key: str = "sk-test",
) -> tuple[ConversationManager, ScriptedClient]:
    client = ScriptedClient(*responses)
    llm = LLMClient(api_key=api_key, model="anthropic/claude-4-5-sonnet")
    llm._client = client  # type: ignore[assignment]
    manager = ConversationManager(
        build_registry(host),
        llm=llm,
        config=AgentConfig(tmp_path / "agent.toml"),
    )
    manager.bus.subscribe(events.append)
    return manager, client


def _types(events: list[ProducerEvent]) -> list[str]:
    return [e.type for e in events]


def _roles(manager: ConversationManager) -> list[str]:
    return [m.role for m in manager.transcript.snapshot()]


async def _run(manager: ConversationManager, text: str) -> None:
    task = manager.send(text)
    assert task is not None
    await task


# =============================================================================
# Scenarios
# =============================================================================


class TestNoToolReply:
    @pytest.mark.anyio
    async def test_streamed_answer(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, client = _make_manager(
            host, tmp_path, events, FakeResponse([_content("Hi"), _content(" there"), _content("!"), DONE])
        )

        await _run(manager, "hello")

        assert _types(events) == [
            "processing_started",
            "stream_started",
            "content_delta",
            "content_delta",
            "content_delta",
            "stream_finished",
            "response_received",
            "processing_finished",
        ]
        assert [e.text for e in events if isinstance(e, ContentDelta)] == ["Hi", " there", "!"]
        assert _roles(manager) == ["user", "assistant"]
        assert manager.transcript.snapshot()[-1].content == "Hi there!"
        assert not manager.is_processing
        assert manager.current_stream is None

        [payload] = client.payloads
        assert payload["stream"] is True
        assert payload["model"] == "anthropic/claude-4-5-sonnet"
        assert payload["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert payload["messages"][1] == {"role": "user", "content": "hello"}
        assert len(payload["tools"]) == 16

    @pytest.mark.anyio
    async def test_empty_response_finishes_silently(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, _ = _make_manager(host, tmp_path, events, FakeResponse([DONE]))
        await _run(manager, "hello")
        assert _types(events) == ["processing_started", "stream_started", "stream_finished", "processing_finished"]
        assert _roles(manager) == ["user"]

    @pytest.mark.anyio
    async def test_stream_without_done_still_finishes(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, _ = _make_manager(host, tmp_path, events, FakeResponse([_content("ok")]))
        await _run(manager, "hello")
        assert _types(events).count("stream_finished") == 1
        assert _types(events)[-2:] == ["response_received", "processing_finished"]


class TestToolRoundTrip:
    @pytest.mark.anyio
    async def test_single_tool_round_trip(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, client = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse([_tool(0, call_id="call_1", name="set_tempo", arguments='{"bpm":128}'), DONE]),
            FakeResponse([_content("Tempo set to 128 BPM."), DONE]),
        )

        await _run(manager, "set tempo to 128")

        assert host.get_tempo() == 128
        assert _roles(manager) == ["user", "assistant", "tool", "assistant"]
        _, assistant, tool, final = manager.transcript.snapshot()
        assert assistant.content == ""
        assert assistant.tool_calls == [
            {"id": "call_1", "type": "function", "function": {"name": "set_tempo", "arguments": '{"bpm":128}'}}
        ]
        assert tool.tool_call_id == "call_1"
        assert tool.name == "set_tempo"
        assert json.loads(tool.content)["bpm"] == 128
        assert final.content == "Tempo set to 128 BPM."

        assert _types(events) == [
            "processing_started",
            "stream_started",
            "stream_finished",
            "tool_call_started",
            "tool_call_completed",
            "stream_started",
            "content_delta",
            "stream_finished",
            "response_received",
            "processing_finished",
        ]
        started = next(e for e in events if isinstance(e, ToolCallStarted))
        assert started.name == "set_tempo"
        assert started.arguments == {"bpm": 128}

        second = client.payloads[1]["messages"]
        assert second[2] == {
            "role": "assistant",
            "content": "",
            "tool_calls": [
                {"id": "call_1", "type": "function", "function": {"name": "set_tempo", "arguments": '{"bpm":128}'}}
            ],
        }
        assert second[3]["role"] == "tool"
        assert second[3]["tool_call_id"] == "call_1"

    @pytest.mark.anyio
    async def test_fragmented_arguments(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        first = (
            _tool(0, call_id="call_1", name="set_tempo", arguments='{"bp')
            + _tool(0, arguments='m":12')
            + _tool(0, arguments="8}")
            + DONE
        )
        # Split the byte stream at awkward offsets as well.
        chunks = [first[i : i + 7] for i in range(0, len(first), 7)]
        manager, _ = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse(chunks),
            FakeResponse([_content("Tempo set to 128 BPM."), DONE]),
        )

        await _run(manager, "set tempo to 128")

        assert host.get_tempo() == 128
        assert _roles(manager) == ["user", "assistant", "tool", "assistant"]
        assert manager.transcript.snapshot()[1].tool_calls[0]["function"]["arguments"] == '{"bpm":128}'

    @pytest.mark.anyio
    async def test_unknown_tool(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, client = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse([_tool(0, call_id="x", name="does_not_exist", arguments="{}"), DONE]),
            FakeResponse([_content("Sorry, I can't do that."), DONE]),
        )

        await _run(manager, "do the impossible")

        tool = manager.transcript.snapshot()[2]
        assert tool.content.startswith("Unknown tool:")
        assert client.payloads[1]["messages"][3]["content"].startswith("Unknown tool:")
        completed = next(e for e in events if isinstance(e, ToolCallCompleted))
        assert completed.success is False
        assert _types(events).count("processing_finished") == 1

    @pytest.mark.anyio
    async def test_out_of_range_tempo(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, client = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse([_tool(0, call_id="t", name="set_tempo", arguments='{"bpm":5000}'), DONE]),
            FakeResponse([_content("That tempo is out of range."), DONE]),
        )

        await _run(manager, "set tempo to 5000")

        assert host.get_tempo() == 140
        expected = "BPM must be between 10 and 999, got 5000"
        assert manager.transcript.snapshot()[2].content == expected
        assert client.payloads[1]["messages"][3]["content"] == expected

    @pytest.mark.anyio
    async def test_multiple_calls_execute_in_index_order(
        self, host: InMemoryHost, tmp_path: Path, events: list
    ) -> None:
        manager, _ = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse(
                [
                    _tool(1, call_id="b", name="set_tempo", arguments='{"bpm":90}'),
                    _tool(0, call_id="a", name="add_instrument_track", arguments='{"name":"Lead"}'),
                    DONE,
                ]
            ),
            FakeResponse([DONE]),
        )

        await _run(manager, "go")

        started = [e.name for e in events if isinstance(e, ToolCallStarted)]
        assert started == ["add_instrument_track", "set_tempo"]
        tool_ids = [m.tool_call_id for m in manager.transcript.snapshot() if m.role == "tool"]
        assert tool_ids == ["a", "b"]
        assert host.get_tempo() == 90

    @pytest.mark.anyio
    async def test_unparsable_arguments_skip_handler(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, _ = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse([_tool(0, call_id="t", name="set_tempo", arguments='{"bpm": 12'), DONE]),
            FakeResponse([DONE]),
        )

        await _run(manager, "go")

        assert host.get_tempo() == 140
        assert manager.transcript.snapshot()[2].content.startswith("Invalid tool arguments")

    @pytest.mark.anyio
    async def test_content_alongside_tool_calls(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, _ = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse([_content("Checking."), _tool(0, call_id="t", name="get_tempo"), DONE]),
            FakeResponse([_content("It is 140."), DONE]),
        )

        await _run(manager, "tempo?")

        assistant = manager.transcript.snapshot()[1]
        assert assistant.content == "Checking."
        assert assistant.tool_calls[0]["function"]["arguments"] == ""
        assert [e.content for e in events if isinstance(e, ResponseReceived)] == ["It is 140."]


# =============================================================================
# Cancellation
# =============================================================================


class TestCancel:
    @pytest.mark.anyio
    async def test_cancel_from_subscriber_mid_stream(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, client = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse([_content("Hi"), _content(" there"), DONE]),
            FakeResponse([_content("Again"), DONE]),
        )

        def cancel_on_first_delta(event: ProducerEvent) -> None:
            if isinstance(event, ContentDelta) and manager.is_processing:
                manager.cancel()

        unsubscribe = manager.bus.subscribe(cancel_on_first_delta)
        await _run(manager, "hello")
        unsubscribe()

        assert _types(events) == ["processing_started", "stream_started", "content_delta", "processing_finished"]
        assert not manager.is_processing
        assert manager.accumulator is None
        assert client.closed_streams == 1
        assert _roles(manager) == ["user"]

        events.clear()
        await _run(manager, "hello again")
        assert _types(events)[-1] == "processing_finished"
        assert _roles(manager) == ["user", "user", "assistant"]

    @pytest.mark.anyio
    async def test_cancel_from_outside_aborts_transport(
        self, host: InMemoryHost, tmp_path: Path, events: list
    ) -> None:
        manager, client = _make_manager(host, tmp_path, events, FakeResponse([_content("Hi")], block=True))

        task = manager.send("hello")
        assert task is not None
        for _ in range(100):
            if any(isinstance(e, ContentDelta) for e in events):
                break
            await asyncio.sleep(0)
        assert any(isinstance(e, ContentDelta) for e in events)

        manager.cancel()
        await asyncio.wait({task})

        assert task.cancelled()
        assert client.closed_streams == 1
        assert _types(events)[-1] == "processing_finished"
        assert _types(events).count("processing_finished") == 1
        assert not manager.is_processing
        assert manager.current_stream is None

    @pytest.mark.anyio
    async def test_cancel_during_tool_loop_fills_results(
        self, host: InMemoryHost, tmp_path: Path, events: list
    ) -> None:
        manager, client = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse(
                [
                    _tool(0, call_id="a", name="set_tempo", arguments='{"bpm":100}'),
                    _tool(1, call_id="b", name="set_tempo", arguments='{"bpm":110}'),
                    DONE,
                ]
            ),
            FakeResponse([_content("next turn"), DONE]),
        )

        def cancel_after_first_tool(event: ProducerEvent) -> None:
            if isinstance(event, ToolCallCompleted):
                manager.cancel()

        unsubscribe = manager.bus.subscribe(cancel_after_first_tool)
        await _run(manager, "two changes")
        unsubscribe()

        assert host.get_tempo() == 100
        tools = [m for m in manager.transcript.snapshot() if m.role == "tool"]
        assert [(m.tool_call_id, m.content) for m in tools][1] == ("b", CANCELED_TOOL_RESULT)
        assert manager.pending_tool_calls == []
        assert len(client.payloads) == 1
        assert _types(events)[-1] == "processing_finished"

        await _run(manager, "continue")
        assert _roles(manager)[-2:] == ["user", "assistant"]

    def test_cancel_when_idle_is_silent(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, _ = _make_manager(host, tmp_path, events)
        manager.cancel()
        assert events == []
        assert not manager.is_processing

    @pytest.mark.anyio
    async def test_clear_history(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, _ = _make_manager(host, tmp_path, events, FakeResponse([_content("Hi"), DONE]))
        await _run(manager, "hello")
        manager.clear_history()
        assert len(manager.transcript) == 0


# =============================================================================
# Preconditions and errors
# =============================================================================


class TestErrors:
    @pytest.mark.anyio
    async def test_not_configured(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, client = _make_manager(host, tmp_path, events, api_key="")
        assert manager.send("hello") is None
        assert events == [ErrorOccurred(message=API_KEY_MISSING_MESSAGE)]
        assert len(manager.transcript) == 0
        assert client.payloads == []

    @pytest.mark.anyio
    async def test_busy(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, client = _make_manager(host, tmp_path, events, FakeResponse([_content("Hi"), DONE]))
        task = manager.send("first")
        assert task is not None
        assert manager.send("second") is None
        assert ErrorOccurred(message=BUSY_MESSAGE) in events
        await task
        assert len(client.payloads) == 1
        assert _roles(manager) == ["user", "assistant"]

    @pytest.mark.anyio
    async def test_network_error(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, _ = _make_manager(host, tmp_path, events, httpx.ConnectError("connection refused"))

        await _run(manager, "hello")

        assert _types(events) == ["processing_started", "stream_started", "error", "processing_finished"]
        assert events[2] == ErrorOccurred(message="Network error: connection refused")
        assert _roles(manager) == ["user"]
        assert not manager.is_processing

    @pytest.mark.anyio
    async def test_http_status_error(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, _ = _make_manager(host, tmp_path, events, FakeResponse([], status_code=500, body=b"boom"))
        await _run(manager, "hello")
        assert ErrorOccurred(message="Network error: HTTP 500: boom") in events
        assert _types(events)[-1] == "processing_finished"

    @pytest.mark.anyio
    async def test_api_error_in_stream_does_not_abort(
        self, host: InMemoryHost, tmp_path: Path, events: list
    ) -> None:
        manager, _ = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse([_sse({"error": {"message": "overloaded"}}), _content("still here"), DONE]),
        )
        await _run(manager, "hello")
        assert ErrorOccurred(message="API error: overloaded") in events
        assert manager.transcript.snapshot()[-1].content == "still here"

    @pytest.mark.anyio
    async def test_is_processing_spans_the_turn(self, host: InMemoryHost, tmp_path: Path, events: list) -> None:
        manager, _ = _make_manager(
            host,
            tmp_path,
            events,
            FakeResponse([_tool(0, call_id="t", name="get_tempo"), DONE]),
            FakeResponse([_content("140"), DONE]),
        )
        seen: list[tuple[str, bool]] = []
        manager.bus.subscribe(lambda e: seen.append((e.type, manager.is_processing)))

        await _run(manager, "tempo?")

        assert all(flag for kind, flag in seen if kind != "processing_finished")
        assert seen[-1] == ("processing_finished", False)


# =============================================================================
# Configuration and singleton
# =============================================================================


def test_configure_persists_and_applies(host: InMemoryHost, tmp_path: Path, events: list) -> None:
    manager, _ = _make_manager(host, tmp_path, events, api_key="")
    assert not manager.is_configured

    manager.configure(" sk-new ", "openai/gpt-4o")

    assert manager.is_configured
    assert manager.model == "openai/gpt-4o"
    assert manager.config.api_key == "sk-new"
    assert AgentConfig(tmp_path / "agent.toml").model == "openai/gpt-4o"


def test_singleton_accessor() -> None:
    first = get_conversation_manager()
    assert get_conversation_manager() is first
    reset_conversation_manager()
    assert get_conversation_manager() is not first


def test_processing_finished_event_is_a_value() -> None:
    assert ProcessingFinished() == ProcessingFinished()
