"""
SSE framing and per-request stream accumulation.

The provider streams ``data: <json>\\n\\n`` records whose boundaries do not
line up with network reads.  ``StreamAccumulator.feed`` buffers raw bytes
and yields each complete payload; ``apply`` folds one parsed chunk into the
content / thinking / tool-call accumulators.

Tool-call ``arguments`` arrive as fragments of JSON *text*.  They are only
concatenated here and parsed once, in ``finalize_tool_calls``, after the
stream has ended.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Final, Optional, Union

from producer.contracts.json_types import JSONObject, JSONValue
from producer.contracts.llm_types import (
    OpenAIStreamChunk,
    StreamChoice,
    StreamDelta,
    StreamError,
    ToolCallDelta,
    ToolCallEntry,
)

logger = logging.getLogger(__name__)

_DATA_PREFIX: Final = b"data: "
_DONE_PAYLOAD: Final = "[DONE]"


class _DoneSentinel:
    """Marker yielded by ``feed`` for the ``[DONE]`` record."""

    def __repr__(self) -> str:
        return "DONE"


DONE: Final = _DoneSentinel()

StreamRecord = Union[OpenAIStreamChunk, _DoneSentinel]


@dataclass
class ToolCallSlot:
    """One streamed tool call, filled in across deltas."""

    id: str = ""
    name: str = ""
    argument_fragments: list[str] = field(default_factory=list)

    @property
    def arguments_text(self) -> str:
        return "".join(self.argument_fragments)


@dataclass(frozen=True)
class ToolCallRecord:
    """A finished tool call ready for dispatch.

    ``parse_error`` is set when the accumulated argument text is not a JSON
    object; ``arguments`` is then empty and the call must not be executed.
    """

    id: str
    name: str
    arguments: JSONObject
    raw_arguments: str
    parse_error: Optional[str] = None

    def to_entry(self) -> ToolCallEntry:
        """Wire shape preserved on the assistant message."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.raw_arguments},
        }


@dataclass(frozen=True)
class ChunkDelta:
    """What one chunk contributed; empty strings mean nothing to emit."""

    content: str = ""
    thinking: str = ""
    error: str = ""


def _parse_arguments(text: str) -> tuple[JSONObject, Optional[str]]:
    if not text.strip():
        return {}, None
    try:
        value: JSONValue = json.loads(text)
    except json.JSONDecodeError as e:
        return {}, f"Invalid tool arguments: {e.msg}"
    if not isinstance(value, dict):
        return {}, "Invalid tool arguments: expected a JSON object"
    return value, None


class StreamAccumulator:
    """Accumulators for one streaming request.

    Created when a request is sent and discarded at stream end or cancel.
    """

    def __init__(self) -> None:
        self.raw_buffer = bytearray()
        self.content_text: str = ""
        self.thinking_text: str = ""
        self.tool_calls: list[ToolCallSlot] = []
        self.done: bool = False
        self.chunk_count: int = 0

    # ------------------------------------------------------------------
    # SSE framing
    # ------------------------------------------------------------------

    def feed(self, data: bytes) -> Iterator[StreamRecord]:
        """Append ``data`` and yield every complete record now available.

        Stops at the first incomplete record; the remainder stays buffered
        until the next call.  Records that are not JSON objects are skipped.
        """
        self.raw_buffer.extend(data)
        while True:
            start = self.raw_buffer.find(_DATA_PREFIX)
            if start < 0:
                # Keep a possible partial prefix at the tail.
                keep = len(_DATA_PREFIX) - 1
                if len(self.raw_buffer) > keep:
                    del self.raw_buffer[: len(self.raw_buffer) - keep]
                return
            payload_start = start + len(_DATA_PREFIX)
            end = self.raw_buffer.find(b"\n", payload_start)
            if end < 0:
                if start:
                    del self.raw_buffer[:start]
                return

            payload = bytes(self.raw_buffer[payload_start:end]).decode("utf-8", errors="replace").strip()
            del self.raw_buffer[: end + 1]

            if not payload:
                continue
            if payload == _DONE_PAYLOAD:
                self.done = True
                yield DONE
                continue
            try:
                chunk = json.loads(payload)
            except json.JSONDecodeError:
                logger.debug(f"Skipping malformed SSE payload: {payload[:120]!r}")
                continue
            if not isinstance(chunk, dict):
                logger.debug(f"Skipping non-object SSE payload: {payload[:120]!r}")
                continue
            self.chunk_count += 1
            yield chunk

    # ------------------------------------------------------------------
    # Delta handling
    # ------------------------------------------------------------------

    def apply(self, chunk: OpenAIStreamChunk) -> ChunkDelta:
        """Fold one parsed chunk into the accumulators."""
        error: Optional[StreamError] = chunk.get("error")
        if error is not None:
            if isinstance(error, dict):
                message = error.get("message")
                text = message if isinstance(message, str) and message else json.dumps(error)
            else:
                text = str(error)
            return ChunkDelta(error=f"API error: {text}")

        choices: Optional[list[StreamChoice]] = chunk.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ChunkDelta()
        delta: Optional[StreamDelta] = choices[0].get("delta")
        if not isinstance(delta, dict):
            return ChunkDelta()

        content = delta.get("content")
        content = content if isinstance(content, str) else ""
        if content:
            self.content_text += content

        thinking = delta.get("reasoning")
        if not (isinstance(thinking, str) and thinking):
            thinking = delta.get("thinking")
        thinking = thinking if isinstance(thinking, str) else ""
        if thinking:
            self.thinking_text += thinking

        tool_calls = delta.get("tool_calls")
        if isinstance(tool_calls, list):
            for tc in tool_calls:
                if isinstance(tc, dict):
                    self._apply_tool_call(tc)

        return ChunkDelta(content=content, thinking=thinking)

    def _apply_tool_call(self, tc: ToolCallDelta) -> None:
        index = tc.get("index", 0)
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            logger.debug(f"Skipping tool-call delta with bad index: {index!r}")
            return
        while len(self.tool_calls) <= index:
            self.tool_calls.append(ToolCallSlot())
        slot = self.tool_calls[index]

        call_id = tc.get("id")
        if isinstance(call_id, str) and call_id:
            slot.id = call_id
        function = tc.get("function")
        if isinstance(function, dict):
            name = function.get("name")
            if isinstance(name, str) and name:
                slot.name = name
            arguments = function.get("arguments")
            if isinstance(arguments, str) and arguments:
                slot.argument_fragments.append(arguments)

    # ------------------------------------------------------------------
    # Stream end
    # ------------------------------------------------------------------

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def finalize_tool_calls(self) -> list[ToolCallRecord]:
        """Parse every slot's argument text, in server index order."""
        records: list[ToolCallRecord] = []
        for slot in self.tool_calls:
            raw = slot.arguments_text
            arguments, parse_error = _parse_arguments(raw)
            if parse_error:
                logger.warning(f"⚠️ Tool call {slot.name or '?'} has unparsable arguments: {raw[:200]!r}")
            records.append(
                ToolCallRecord(
                    id=slot.id,
                    name=slot.name,
                    arguments=arguments,
                    raw_arguments=raw,
                    parse_error=parse_error,
                )
            )
        return records
