"""Render a ``ChatView`` to the terminal with typer.

Streaming artifacts (assistant text, thinking) are printed incrementally:
only the characters not yet shown are written, on the same line.
"""
from __future__ import annotations

import json

import typer

from producer.ui.aggregator import (
    Artifact,
    AssistantArtifact,
    ChatView,
    ErrorArtifact,
    ThinkingArtifact,
    ToolCallArtifact,
    UserArtifact,
)


class TerminalRenderer:
    def __init__(self, view: ChatView, *, show_thinking: bool = True, echo_user: bool = False) -> None:
        self.show_thinking = show_thinking
        self.echo_user = echo_user
        self._printed: dict[int, int] = {}
        self._open: int | None = None
        view.on_change(self.render)

    def finish_line(self) -> None:
        """End the line of a streaming artifact, if one is open."""
        if self._open is not None:
            typer.echo("")
            self._open = None

    def render(self, artifact: Artifact) -> None:
        if isinstance(artifact, AssistantArtifact):
            self._stream(artifact.id, artifact.text, header=None, dim=False)
        elif isinstance(artifact, ThinkingArtifact):
            if self.show_thinking:
                self._stream(artifact.id, artifact.full_text, header=f"💭 {artifact.title}", dim=True)
        elif isinstance(artifact, ToolCallArtifact):
            self.finish_line()
            if not artifact.completed:
                args = json.dumps(artifact.arguments, ensure_ascii=False)
                typer.secho(f"🔧 {artifact.title} {args}", fg=typer.colors.CYAN)
            else:
                color = typer.colors.GREEN if artifact.success else typer.colors.RED
                for line in artifact.body.splitlines() or [""]:
                    typer.secho(f"   {line}", fg=color)
        elif isinstance(artifact, ErrorArtifact):
            self.finish_line()
            typer.secho(f"❌ {artifact.message}", fg=typer.colors.RED, err=True)
        elif isinstance(artifact, UserArtifact):
            if self.echo_user:
                self.finish_line()
                typer.secho(f"> {artifact.text}", bold=True)

    def _stream(self, artifact_id: int, text: str, *, header: str | None, dim: bool) -> None:
        if self._open != artifact_id:
            self.finish_line()
            if header:
                typer.secho(header, dim=True)
            self._open = artifact_id
        done = self._printed.get(artifact_id, 0)
        suffix = text[done:]
        if suffix and dim:
            typer.secho(suffix, nl=False, dim=True)
        elif suffix:
            typer.echo(suffix, nl=False)
        self._printed[artifact_id] = len(text)
