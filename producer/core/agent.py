"""
Conversation manager: the agentic chat loop.

One turn is: user message -> streaming request -> (tool calls executed
serially -> streaming request)* -> final answer.  Everything runs on the
event loop that called ``send``; tool handlers are synchronous and run
inline between requests.

Cancellation is identified by a turn counter: ``cancel`` bumps it, and the
turn task checks it after every event it emits, so a turn canceled from
inside a subscriber stops without emitting anything further.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from producer.config_store import AgentConfig
from producer.contracts.llm_types import ChatMessage, ChatRequestPayload
from producer.core.llm_client import LLMClient
from producer.core.prompts import system_prompt
from producer.core.stream import DONE, StreamAccumulator, ToolCallRecord
from producer.core.tools.registry import ToolRegistry, ToolResult
from producer.core.transcript import Message, Transcript
from producer.errors import API_KEY_MISSING_MESSAGE, TransportError
from producer.protocol.bus import EventBus
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

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "already processing a request... please wait."
CANCELED_TOOL_RESULT = "Tool call canceled"


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class ConversationManager:
    """
    Owns the transcript and drives turns against the LLM.

    Subscribe to ``bus`` for events.  All methods must be called from the
    event loop thread; ``send`` additionally needs a running loop.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        llm: Optional[LLMClient] = None,
        config: Optional[AgentConfig] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.registry = registry
        self.config = config or AgentConfig()
        self.llm = llm or LLMClient(api_key=self.config.api_key, model=self.config.model)
        self.bus = bus or EventBus()
        self.transcript = Transcript()

        self.is_processing: bool = False
        self.pending_tool_calls: list[ToolCallRecord] = []
        self.current_tool_index: int = 0
        self.current_stream: Optional[asyncio.Task[None]] = None
        self.accumulator: Optional[StreamAccumulator] = None
        self._turn: int = 0

    # =========================================================================
    # Configuration
    # =========================================================================

    def configure(self, api_key: str, model: str) -> None:
        """Persist and apply a new API key and model."""
        self.config.set_api_key(api_key)
        self.config.set_model(model)
        self.llm.configure(api_key.strip(), model.strip())

    @property
    def is_configured(self) -> bool:
        return bool(self.llm.api_key.strip())

    @property
    def model(self) -> str:
        return self.llm.model

    def build_payload(self) -> ChatRequestPayload:
        messages: list[ChatMessage] = [{"role": "system", "content": system_prompt()}]
        messages.extend(self.transcript.to_wire())
        return {
            "model": self.llm.model,
            "stream": True,
            "messages": messages,
            "tools": self.registry.describe_all(),
        }

    # =========================================================================
    # Public operations
    # =========================================================================

    def send(self, user_text: str) -> Optional[asyncio.Task[None]]:
        """Start a turn; returns the turn task, or None if it was refused."""
        if not self.is_configured:
            self._emit(ErrorOccurred(message=API_KEY_MISSING_MESSAGE))
            return None
        if self.is_processing:
            self._emit(ErrorOccurred(message=BUSY_MESSAGE))
            return None

        loop = asyncio.get_running_loop()
        self.transcript.append(Message.user(user_text))
        self.is_processing = True
        self._turn += 1
        turn = self._turn
        logger.info(f"💬 Turn {turn} started ({len(self.transcript)} messages)")

        self._emit(ProcessingStarted())
        if not self._is_current(turn):
            return None

        task = loop.create_task(self._run_turn(turn))
        self.current_stream = task
        return task

    def cancel(self) -> None:
        """Abort the current turn.  Safe to call when idle."""
        was_processing = self.is_processing
        self._turn += 1

        task, self.current_stream = self.current_stream, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

        self.accumulator = None
        self._fill_canceled_tool_results()
        self.pending_tool_calls = []
        self.current_tool_index = 0
        self.is_processing = False

        if was_processing:
            logger.info("🛑 Turn canceled")
            self._emit(ProcessingFinished())

    def clear_history(self) -> None:
        self.cancel()
        self.transcript.clear()

    async def close(self) -> None:
        self.cancel()
        await self.llm.close()

    # =========================================================================
    # Turn loop
    # =========================================================================

    def _is_current(self, turn: int) -> bool:
        return self._turn == turn

    def _emit(self, event: ProducerEvent) -> None:
        self.bus.emit(event)

    def _finish(self, turn: int) -> None:
        if not self._is_current(turn):
            return
        self.is_processing = False
        self.current_stream = None
        self.accumulator = None
        self.pending_tool_calls = []
        self.current_tool_index = 0
        logger.info(f"🏁 Turn {turn} finished")
        self._emit(ProcessingFinished())

    def _fill_canceled_tool_results(self) -> None:
        """Answer every issued-but-unanswered tool call so the transcript stays sendable."""
        names = {call.id: call.name for call in self.pending_tool_calls}
        for call_id in self.transcript.pending_tool_call_ids:
            self.transcript.append(Message.tool(call_id, names.get(call_id, ""), CANCELED_TOOL_RESULT))

    async def _run_turn(self, turn: int) -> None:
        try:
            while self._is_current(turn):
                if not await self._stream_once(turn):
                    break
        except Exception as e:
            logger.exception(f"❌ Turn {turn} failed")
            if self._is_current(turn):
                self._fill_canceled_tool_results()
                self._emit(ErrorOccurred(message=f"Internal error: {e}"))
                self._finish(turn)

    async def _stream_once(self, turn: int) -> bool:
        """Run one request; True means tool results were appended and the loop re-enters."""
        acc = StreamAccumulator()
        self.accumulator = acc
        self._emit(StreamStarted())
        if not self._is_current(turn):
            return False

        finished_sent = False
        try:
            async with self.llm.open_stream(self.build_payload()) as chunks:
                async for data in chunks:
                    for record in acc.feed(data):
                        if record is DONE:
                            if not finished_sent:
                                finished_sent = True
                                self._emit(StreamFinished())
                                if not self._is_current(turn):
                                    return False
                            continue
                        delta = acc.apply(record)
                        if delta.error:
                            logger.warning(f"⚠️ {delta.error}")
                            self._emit(ErrorOccurred(message=delta.error))
                            if not self._is_current(turn):
                                return False
                        if delta.thinking:
                            self._emit(ThinkingDelta(text=delta.thinking))
                            if not self._is_current(turn):
                                return False
                        if delta.content:
                            self._emit(ContentDelta(text=delta.content))
                            if not self._is_current(turn):
                                return False
        except (httpx.HTTPError, TransportError) as e:
            if not self._is_current(turn):
                return False
            detail = str(e) or type(e).__name__
            logger.error(f"❌ Network error: {detail}")
            self.accumulator = None
            self._emit(ErrorOccurred(message=f"Network error: {detail}"))
            self._finish(turn)
            return False

        logger.info(
            f"✅ Stream done: chunks={acc.chunk_count}, tool_calls={len(acc.tool_calls)}, "
            f"content_len={len(acc.content_text)}"
        )
        if not finished_sent:
            self._emit(StreamFinished())
            if not self._is_current(turn):
                return False
        self.accumulator = None

        if acc.has_tool_calls:
            return self._execute_tool_calls(turn, acc)

        if acc.content_text:
            self.transcript.append(Message.assistant(acc.content_text))
            self._emit(ResponseReceived(content=acc.content_text))
            if not self._is_current(turn):
                return False
        self._finish(turn)
        return False

    def _execute_tool_calls(self, turn: int, acc: StreamAccumulator) -> bool:
        calls = acc.finalize_tool_calls()
        self.transcript.append(Message.assistant(acc.content_text, [c.to_entry() for c in calls]))
        self.pending_tool_calls = calls
        self.current_tool_index = 0

        for call in calls:
            self._emit(ToolCallStarted(name=call.name, arguments=call.arguments))
            if not self._is_current(turn):
                return False

            if call.parse_error:
                result = ToolResult.err(call.parse_error)
            else:
                result = self.registry.execute(call.name, call.arguments)
            self.transcript.append(Message.tool(call.id, call.name, result.content))
            self.current_tool_index += 1

            self._emit(ToolCallCompleted(name=call.name, result=result.content, success=result.success))
            if not self._is_current(turn):
                return False

        self.pending_tool_calls = []
        self.current_tool_index = 0
        return True


# =============================================================================
# Process-wide instance
# =============================================================================

_manager: Optional[ConversationManager] = None


def get_conversation_manager() -> ConversationManager:
    """Return the shared manager, creating it over the in-memory host on first use."""
    global _manager
    if _manager is None:
        from producer.core.tools.handlers import build_registry
        from producer.daw.memory_host import InMemoryHost

        _manager = ConversationManager(build_registry(InMemoryHost()))
    return _manager


def reset_conversation_manager() -> None:
    """Drop the shared manager (tests, CLI teardown)."""
    global _manager
    _manager = None
