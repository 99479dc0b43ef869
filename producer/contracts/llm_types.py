"""Typed structures for OpenAI-format chat messages and API boundaries.

Organisation:
  Chat messages     → ``SystemMessage``, ``UserMessage``, ``AssistantMessage``,
                      ``ToolResultMessage``, ``ChatMessage`` (union)
  Tool schemas      → ``OpenAIPropertyDef``, ``ToolParametersDict``,
                      ``ToolFunctionDict``, ``ToolSchemaDict``
  Tool calls        → ``ToolCallFunction``, ``ToolCallEntry``
  Request payload   → ``ChatRequestPayload``
  Streaming chunks  → ``ToolCallFunctionDelta``, ``ToolCallDelta``,
                      ``StreamDelta``, ``StreamChoice``, ``StreamError``,
                      ``OpenAIStreamChunk``
  Model catalog     → ``ModelEntry``, ``ModelsResponse``
"""
from __future__ import annotations

from typing import Literal, Union

from typing_extensions import Required, TypedDict

from producer.contracts.json_types import JSONValue


# ── Chat message shapes ────────────────────────────────────────────────────────


class ToolCallFunction(TypedDict):
    """The ``function`` field inside an OpenAI tool call.

    ``arguments`` is a JSON-encoded string; callers must ``json.loads`` it.
    """

    name: str
    arguments: str


class ToolCallEntry(TypedDict):
    """One tool call in an assistant message, preserved verbatim from the stream."""

    id: str
    type: str
    function: ToolCallFunction


class SystemMessage(TypedDict):
    role: Literal["system"]
    content: str


class UserMessage(TypedDict):
    role: Literal["user"]
    content: str


class AssistantMessage(TypedDict, total=False):
    """An assistant reply; may be text-only or contain tool calls."""

    role: Required[Literal["assistant"]]
    content: Required[str]
    tool_calls: list[ToolCallEntry]


class ToolResultMessage(TypedDict):
    """A tool result message returned to the LLM after a tool call."""

    role: Literal["tool"]
    tool_call_id: str
    content: str


ChatMessage = Union[SystemMessage, UserMessage, AssistantMessage, ToolResultMessage]
"""Discriminated union of all OpenAI chat message shapes."""


# ── Tool schema shapes (OpenAI function-calling format) ───────────────────────


class OpenAIPropertyDef(TypedDict, total=False):
    """JSON Schema definition for a single function parameter."""

    type: Required[str]
    description: str
    enum: list[str]
    minimum: float
    maximum: float
    default: JSONValue
    items: dict[str, JSONValue]
    properties: dict[str, "OpenAIPropertyDef"]
    required: list[str]


class ToolParametersDict(TypedDict):
    """JSON Schema ``parameters`` block inside an OpenAI tool definition."""

    type: Literal["object"]
    properties: dict[str, OpenAIPropertyDef]
    required: list[str]


class ToolFunctionDict(TypedDict):
    name: str
    description: str
    parameters: ToolParametersDict


class ToolSchemaDict(TypedDict):
    """A single OpenAI-format tool definition (``{type: function, function: {...}}``)."""

    type: Literal["function"]
    function: ToolFunctionDict


# ── Request payload ───────────────────────────────────────────────────────────


class ChatRequestPayload(TypedDict):
    """Body of ``POST /chat/completions``."""

    model: str
    stream: bool
    messages: list[ChatMessage]
    tools: list[ToolSchemaDict]


# ── Streaming chunk shapes ────────────────────────────────────────────────────


class ToolCallFunctionDelta(TypedDict, total=False):
    """Partial ``function`` block; ``arguments`` is a JSON *text* fragment."""

    name: str
    arguments: str


class ToolCallDelta(TypedDict, total=False):
    index: int
    id: str
    type: str
    function: ToolCallFunctionDelta


class StreamDelta(TypedDict, total=False):
    role: str
    content: str
    reasoning: str
    thinking: str
    tool_calls: list[ToolCallDelta]


class StreamChoice(TypedDict, total=False):
    delta: StreamDelta
    finish_reason: str | None


class StreamError(TypedDict, total=False):
    message: str
    code: JSONValue


class OpenAIStreamChunk(TypedDict, total=False):
    """One SSE ``data:`` payload."""

    id: str
    choices: list[StreamChoice]
    error: StreamError


# ── Model catalog ─────────────────────────────────────────────────────────────


class ModelEntry(TypedDict, total=False):
    id: Required[str]
    name: str
    context_length: int


class ModelsResponse(TypedDict):
    """Response of ``GET /models``."""

    data: list[ModelEntry]
