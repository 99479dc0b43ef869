"""producer chat: interactive session against the in-memory host.

Type a message and press Enter.  While the assistant works, Ctrl-C cancels
the turn; at the prompt it exits.  ``/clear`` forgets the conversation,
``/quit`` (or Ctrl-D) exits.
"""
from __future__ import annotations

import asyncio
import logging
import signal
import threading
from collections.abc import Callable

import typer

from producer.core.agent import ConversationManager, get_conversation_manager
from producer.errors import ExitCode
from producer.ui.aggregator import ChatView
from producer.ui.terminal import TerminalRenderer

logger = logging.getLogger(__name__)

PROMPT = "you> "
QUIT_COMMANDS = ("/quit", "/exit")


def _read_line() -> str:
    return input(PROMPT)


def _settle(future: asyncio.Future[str], line: str, error: Exception | None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(line)


async def _read_async(read_line: Callable[[], str]) -> str:
    """Run ``read_line`` on a daemon thread.

    A thread blocked in ``input()`` is never joined, so cancelling the
    read (Ctrl-C at the prompt) lets the process exit right away.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def worker() -> None:
        try:
            line, error = read_line(), None
        except Exception as e:
            line, error = "", e
        try:
            loop.call_soon_threadsafe(_settle, future, line, error)
        except RuntimeError:
            logger.debug("Event loop closed before input arrived")

    threading.Thread(target=worker, name="producer-input", daemon=True).start()
    return await future


class _CancelOnInterrupt:
    """Route SIGINT to ``cancel`` for the duration of one turn.

    On exit the previous Python-level handler is put back, so Ctrl-C at
    the next prompt behaves as it did before the turn.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, cancel: Callable[[], None]) -> None:
        self.loop = loop
        self.cancel = cancel
        self.installed = False
        self.previous: object = None

    def __enter__(self) -> "_CancelOnInterrupt":
        self.previous = signal.getsignal(signal.SIGINT)
        try:
            self.loop.add_signal_handler(signal.SIGINT, self.cancel)
        except (NotImplementedError, RuntimeError, ValueError):
            logger.debug("SIGINT handler unavailable; Ctrl-C will not cancel turns")
        else:
            self.installed = True
        return self

    def __exit__(self, *exc: object) -> None:
        if not self.installed:
            return
        self.loop.remove_signal_handler(signal.SIGINT)
        if self.previous is not None:
            signal.signal(signal.SIGINT, self.previous)  # type: ignore[arg-type]


async def run_chat(
    manager: ConversationManager,
    *,
    read_line: Callable[[], str] = _read_line,
    show_thinking: bool = True,
) -> None:
    """Read-eval loop; returns when the user quits."""
    view = ChatView(manager)
    renderer = TerminalRenderer(view, show_thinking=show_thinking)
    loop = asyncio.get_running_loop()

    try:
        while True:
            try:
                line = await _read_async(read_line)
            except (EOFError, KeyboardInterrupt, asyncio.CancelledError):
                # Ctrl-D, or Ctrl-C at the prompt (asyncio.run cancels the main task).
                typer.echo("")
                break

            text = line.strip()
            if not text:
                continue
            if text in QUIT_COMMANDS:
                break
            if text == "/clear":
                view.clear()
                typer.echo("🧹 Conversation cleared.")
                continue

            task = view.submit(text)
            if task is None:
                renderer.finish_line()
                continue

            with _CancelOnInterrupt(loop, manager.cancel):
                await asyncio.wait({task})
            renderer.finish_line()
    finally:
        view.detach()
        await manager.close()


def chat(
    no_thinking: bool = typer.Option(False, "--no-thinking", help="Hide the model's reasoning."),
) -> None:
    """Chat with the assistant about the current project."""
    manager = get_conversation_manager()
    if not manager.is_configured:
        typer.echo("❌ No API key configured. Run `producer config set-key <key>` first.")
        raise typer.Exit(code=int(ExitCode.NOT_CONFIGURED))

    typer.echo(f"🎛️  Producer ready (model: {manager.model}). /clear resets, /quit exits.")
    asyncio.run(run_chat(manager, show_thinking=not no_thinking))
