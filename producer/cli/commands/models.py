"""producer models: list the filtered OpenRouter catalog as ``name<TAB>id``."""
from __future__ import annotations

import asyncio
import logging

import typer

from producer.config_store import AgentConfig
from producer.core.llm_client import LLMClient, ModelOption
from producer.errors import ExitCode, TransportError

logger = logging.getLogger(__name__)


async def fetch_models(client: LLMClient) -> list[ModelOption]:
    try:
        return await client.list_models()
    finally:
        await client.close()


def models() -> None:
    """Print models from the allowed providers; the current one is starred."""
    store = AgentConfig()
    client = LLMClient(api_key=store.api_key, model=store.model)
    try:
        options = asyncio.run(fetch_models(client))
    except TransportError as exc:
        typer.echo(f"❌ Could not fetch models: {exc}")
        logger.error("❌ producer models error: %s", exc)
        raise typer.Exit(code=int(ExitCode.INTERNAL_ERROR))

    if not options:
        typer.echo("(no models available)")
        return
    for option in options:
        marker = "*" if option.id == store.model else " "
        typer.echo(f"{marker} {option.name}\t{option.id}")
