"""Conversation manager events: the typed boundary between manager and UI.

Every event the manager publishes is an instance of a ``ProducerEvent``
subclass, discriminated by its ``type`` literal.  Events are immutable and
reject unknown fields.

Within a turn the order is::

    processing_started
    stream_started
      (thinking_delta | content_delta)*
    stream_finished
      (tool_call_started tool_call_completed)*   -> stream_started ...
    response_received?
    processing_finished
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ProducerEvent(BaseModel):
    """Base class for manager events."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str


class ProcessingStarted(ProducerEvent):
    """A turn began; input should be disabled."""

    type: Literal["processing_started"] = "processing_started"


class StreamStarted(ProducerEvent):
    type: Literal["stream_started"] = "stream_started"


class ContentDelta(ProducerEvent):
    """One fragment of user-facing assistant text."""

    type: Literal["content_delta"] = "content_delta"
    text: str


class ThinkingDelta(ProducerEvent):
    """One fragment of model reasoning, shown separately from content."""

    type: Literal["thinking_delta"] = "thinking_delta"
    text: str


class ToolCallStarted(ProducerEvent):
    type: Literal["tool_call_started"] = "tool_call_started"
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolCallCompleted(ProducerEvent):
    """``result`` is the text that became the tool message content."""

    type: Literal["tool_call_completed"] = "tool_call_completed"
    name: str
    result: str
    success: bool = True


class StreamFinished(ProducerEvent):
    type: Literal["stream_finished"] = "stream_finished"


class ResponseReceived(ProducerEvent):
    """Final assistant text of a turn that ended without tool calls."""

    type: Literal["response_received"] = "response_received"
    content: str


class ErrorOccurred(ProducerEvent):
    """User-visible error (configuration, busy, network, API)."""

    type: Literal["error"] = "error"
    message: str


class ProcessingFinished(ProducerEvent):
    """The turn ended (answered, errored, or canceled); input may be re-enabled."""

    type: Literal["processing_finished"] = "processing_finished"


ManagerEvent = Union[
    ProcessingStarted,
    StreamStarted,
    ContentDelta,
    ThinkingDelta,
    ToolCallStarted,
    ToolCallCompleted,
    StreamFinished,
    ResponseReceived,
    ErrorOccurred,
    ProcessingFinished,
]
