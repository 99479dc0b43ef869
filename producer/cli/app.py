"""Producer CLI: Typer application root.

Entry point for the ``producer`` console script.
"""
from __future__ import annotations

import logging
import sys

import typer

from producer.cli.commands import chat, config, models
from producer.config import settings

cli = typer.Typer(
    name="producer",
    help="AI producer: chat with an LLM that edits your music project.",
    no_args_is_help=True,
)


@cli.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at INFO level to stderr."),
) -> None:
    """Configure logging before any subcommand runs."""
    if settings.debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    # stdout belongs to the conversation; logs go to stderr.
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


cli.command("chat", help="Start an interactive session.")(chat.chat)
cli.command("models", help="List models available on OpenRouter.")(models.models)
cli.add_typer(config.app, name="config", help="Show or change the API key and model.")


if __name__ == "__main__":
    cli()
