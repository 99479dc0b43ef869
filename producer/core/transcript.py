"""Transcript store: the ordered chat history sent with every request."""
from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Literal, Optional

from producer.contracts.llm_types import ChatMessage, ToolCallEntry
from producer.errors import TranscriptError

logger = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class Message:
    """One chat message.

    ``tool_call_id`` and ``name`` are set only on ``tool`` messages;
    ``tool_calls`` only on assistant messages that issued calls.
    """

    role: Role
    content: str = ""
    tool_call_id: Optional[str] = None
    name: Optional[str] = None
    tool_calls: list[ToolCallEntry] = field(default_factory=list)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: Optional[list[ToolCallEntry]] = None) -> Message:
        return cls(role="assistant", content=content, tool_calls=list(tool_calls or []))

    @classmethod
    def tool(cls, tool_call_id: str, name: str, content: str) -> Message:
        return cls(role="tool", content=content, tool_call_id=tool_call_id, name=name)

    def to_wire(self) -> ChatMessage:
        """Shape sent in the request ``messages`` array."""
        if self.role == "tool":
            return {"role": "tool", "tool_call_id": self.tool_call_id or "", "content": self.content}
        if self.role == "assistant":
            if self.tool_calls:
                return {"role": "assistant", "content": self.content, "tool_calls": list(self.tool_calls)}
            return {"role": "assistant", "content": self.content}
        if self.role == "system":
            return {"role": "system", "content": self.content}
        return {"role": "user", "content": self.content}


class Transcript:
    """Append-only message list.

    Tool messages must answer the most recent assistant tool calls
    contiguously and in order; any other append while answers are still
    owed raises ``TranscriptError``.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._expected_tool_ids: deque[str] = deque()

    def append(self, message: Message) -> None:
        if message.role == "tool":
            if not self._expected_tool_ids:
                raise TranscriptError("Tool message without a pending assistant tool call")
            expected = self._expected_tool_ids[0]
            if message.tool_call_id != expected:
                raise TranscriptError(
                    f"Tool message for {message.tool_call_id!r} out of order; expected {expected!r}"
                )
            self._expected_tool_ids.popleft()
        elif self._expected_tool_ids:
            raise TranscriptError(
                f"{len(self._expected_tool_ids)} tool result(s) still owed before a {message.role} message"
            )

        self._messages.append(message)
        if message.role == "assistant" and message.tool_calls:
            self._expected_tool_ids.extend(call["id"] for call in message.tool_calls)

    @property
    def pending_tool_call_ids(self) -> tuple[str, ...]:
        """Ids of issued tool calls that have no result message yet."""
        return tuple(self._expected_tool_ids)

    def clear(self) -> None:
        logger.debug(f"🧹 Clearing transcript ({len(self._messages)} messages)")
        self._messages.clear()
        self._expected_tool_ids.clear()

    def snapshot(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def to_wire(self) -> list[ChatMessage]:
        return [m.to_wire() for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))
