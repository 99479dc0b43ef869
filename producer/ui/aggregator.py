"""
Chat view model: turns manager events into an ordered list of artifacts.

Artifacts are what a chat panel draws: user bubbles, assistant text,
collapsible "Thinking" blocks, collapsible tool-call blocks, and errors.
At most one thinking, one content and one tool-call artifact are *live*
(still being updated) at a time.  ``stream_started`` and
``stream_finished`` drop the live handles so the next stream in the same
turn starts fresh artifacts.

Renderers subscribe with ``on_change`` and receive every artifact that was
added or updated.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Literal, Optional, Union

from producer.config import settings
from producer.core.agent import ConversationManager
from producer.protocol.events import (
    ContentDelta,
    ErrorOccurred,
    ProcessingFinished,
    ProcessingStarted,
    ProducerEvent,
    ResponseReceived,
    StreamFinished,
    StreamStarted,
    ThinkingDelta,
    ToolCallCompleted,
    ToolCallStarted,
)
from producer.ui.scroll import AutoScrollPolicy

logger = logging.getLogger(__name__)

_ids = count(1)


def _next_id() -> int:
    return next(_ids)


@dataclass
class UserArtifact:
    text: str
    kind: Literal["user"] = "user"
    id: int = field(default_factory=_next_id)


@dataclass
class AssistantArtifact:
    text: str = ""
    kind: Literal["assistant"] = "assistant"
    id: int = field(default_factory=_next_id)


@dataclass
class ThinkingArtifact:
    """``full_text`` is everything received; ``display_text`` is what fits."""

    full_text: str = ""
    display_text: str = ""
    title: str = "Thinking"
    collapsed: bool = False
    kind: Literal["thinking"] = "thinking"
    id: int = field(default_factory=_next_id)


@dataclass
class ToolCallArtifact:
    title: str
    arguments: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    completed: bool = False
    success: bool = True
    collapsed: bool = True
    kind: Literal["tool_call"] = "tool_call"
    id: int = field(default_factory=_next_id)


@dataclass
class ErrorArtifact:
    message: str
    kind: Literal["error"] = "error"
    id: int = field(default_factory=_next_id)


Artifact = Union[UserArtifact, AssistantArtifact, ThinkingArtifact, ToolCallArtifact, ErrorArtifact]
ChangeListener = Callable[[Artifact], None]


def format_tool_result(result: str) -> str:
    """Pretty-print ``result`` when it is a JSON object, else return it unchanged."""
    try:
        parsed = json.loads(result)
    except (json.JSONDecodeError, TypeError):
        return result
    if not isinstance(parsed, dict):
        return result
    return json.dumps(parsed, indent=2, ensure_ascii=False)


def thinking_tail(text: str, limit: int) -> str:
    """The last ``limit`` characters, prefixed with an ellipsis when cut."""
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]


class ChatView:
    """Headless chat panel bound to a ``ConversationManager``."""

    def __init__(
        self,
        manager: ConversationManager,
        *,
        scroll: Optional[AutoScrollPolicy] = None,
        thinking_chars: Optional[int] = None,
    ) -> None:
        self.manager = manager
        self.scroll = scroll
        self.thinking_chars = settings.thinking_display_chars if thinking_chars is None else thinking_chars

        self.artifacts: list[Artifact] = []
        self.input_enabled: bool = True
        self.streaming_output_complete: bool = False

        self.live_thinking: Optional[ThinkingArtifact] = None
        self.live_content: Optional[AssistantArtifact] = None
        self.live_tool: Optional[ToolCallArtifact] = None
        self._content_buffer: str = ""
        self._thinking_buffer: str = ""

        self._listeners: list[ChangeListener] = []
        self._unsubscribe = manager.bus.subscribe(self.handle_event)

    # -- renderer hooks -------------------------------------------------------

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def detach(self) -> None:
        self._unsubscribe()

    def _changed(self, artifact: Artifact) -> None:
        for listener in list(self._listeners):
            listener(artifact)
        if self.scroll is not None:
            self.scroll.on_content_changed()

    def _add(self, artifact: Artifact) -> None:
        self.artifacts.append(artifact)
        self._changed(artifact)

    def _reset_live(self) -> None:
        self.live_thinking = None
        self.live_content = None
        self.live_tool = None
        self._content_buffer = ""
        self._thinking_buffer = ""

    # -- user input -----------------------------------------------------------

    def submit(self, text: str):
        """Show the user's message and start a turn; None when nothing was sent."""
        text = text.strip()
        if not text or not self.input_enabled:
            return None
        if self.manager.is_configured and not self.manager.is_processing:
            self._add(UserArtifact(text=text))
        return self.manager.send(text)

    def clear(self) -> None:
        """Clear history in the manager and every artifact on screen."""
        self.manager.clear_history()
        self.artifacts.clear()
        self._reset_live()
        self.streaming_output_complete = False
        self.input_enabled = True

    # -- events ---------------------------------------------------------------

    def handle_event(self, event: ProducerEvent) -> None:
        if isinstance(event, ProcessingStarted):
            self.input_enabled = False
            self.streaming_output_complete = False
        elif isinstance(event, StreamStarted):
            self._reset_live()
        elif isinstance(event, ThinkingDelta):
            self._on_thinking(event.text)
        elif isinstance(event, ContentDelta):
            self._on_content(event.text)
        elif isinstance(event, ToolCallStarted):
            self.live_tool = ToolCallArtifact(title=event.name, arguments=dict(event.arguments))
            self._add(self.live_tool)
        elif isinstance(event, ToolCallCompleted):
            self._on_tool_completed(event)
        elif isinstance(event, StreamFinished):
            if self.live_content is not None:
                self.streaming_output_complete = True
            self._reset_live()
        elif isinstance(event, ResponseReceived):
            self._on_response(event.content)
        elif isinstance(event, ErrorOccurred):
            self._add(ErrorArtifact(message=event.message))
        elif isinstance(event, ProcessingFinished):
            self._reset_live()
            self.input_enabled = True

    def _on_thinking(self, text: str) -> None:
        self._thinking_buffer += text
        if self.live_thinking is None:
            self.live_thinking = ThinkingArtifact()
            self.artifacts.append(self.live_thinking)
        self.live_thinking.full_text = self._thinking_buffer
        self.live_thinking.display_text = thinking_tail(self._thinking_buffer, self.thinking_chars)
        self._changed(self.live_thinking)

    def _on_content(self, text: str) -> None:
        self._content_buffer += text
        if self.live_content is None:
            self.live_content = AssistantArtifact()
            self.artifacts.append(self.live_content)
        self.live_content.text = self._content_buffer
        self._changed(self.live_content)

    def _on_tool_completed(self, event: ToolCallCompleted) -> None:
        tool = self.live_tool
        if tool is None or tool.title != event.name:
            tool = ToolCallArtifact(title=event.name)
            self.artifacts.append(tool)
        tool.body = format_tool_result(event.result)
        tool.completed = True
        tool.success = event.success
        self.live_tool = None
        self._changed(tool)

    def _on_response(self, content: str) -> None:
        if self.streaming_output_complete:
            self.streaming_output_complete = False
            logger.debug("Skipping response_received already shown by streaming")
            return
        self._add(AssistantArtifact(text=content))
