"""producer config: manage the persisted API key and model.

Subcommands:

  producer config show
      Print the selected model and whether an API key is set (masked).

  producer config set-key <key>
      Store the OpenRouter API key in ``[agent] apikey``.

  producer config set-model <model-id>
      Store the model id (e.g. ``anthropic/claude-4-5-sonnet``) in ``[agent] model``.
"""
from __future__ import annotations

import logging

import typer

from producer.config_store import AgentConfig
from producer.errors import ExitCode

logger = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True)


def mask_key(key: str) -> str:
    """Show only the edges of a secret."""
    if len(key) <= 12:
        return "***"
    return f"{key[:4]}...{key[-4:]}"


@app.command("show")
def config_show() -> None:
    """Print the current agent settings; the key is masked."""
    store = AgentConfig()
    typer.echo(f"config: {store.path}")
    typer.echo(f"model:  {store.model}")
    if store.is_configured:
        typer.echo(f"apikey: {mask_key(store.api_key)}")
    else:
        typer.echo("apikey: (not set; run `producer config set-key <key>`)")


@app.command("set-key")
def config_set_key(
    api_key: str = typer.Argument(..., help="OpenRouter API key."),
) -> None:
    """Save the OpenRouter API key."""
    if not api_key.strip():
        typer.echo("❌ API key cannot be empty.")
        raise typer.Exit(code=int(ExitCode.USER_ERROR))
    store = AgentConfig()
    store.set_api_key(api_key)
    typer.echo(f"✅ API key saved ({mask_key(api_key.strip())})")


@app.command("set-model")
def config_set_model(
    model_id: str = typer.Argument(..., help="Full model id, e.g. 'anthropic/claude-4-5-sonnet'."),
) -> None:
    """Save the model used for new requests."""
    model_id = model_id.strip()
    if "/" not in model_id:
        typer.echo(f"❌ Model id must look like 'provider/name', got: {model_id!r}")
        raise typer.Exit(code=int(ExitCode.USER_ERROR))
    store = AgentConfig()
    store.set_model(model_id)
    typer.echo(f"✅ Model set to {model_id}")
