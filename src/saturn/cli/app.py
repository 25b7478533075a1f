"""CLI main module for Saturn."""

from __future__ import annotations

import asyncio

import typer
from loguru import logger

from saturn.client import BackendClient
from saturn.config import Settings, get_settings
from saturn.errors import ConfigurationError

from .loop import EMPTY_PROMPT_MESSAGE, ConversationLoop
from .render import Renderer, create_cli_renderer

app = typer.Typer(
    name="saturn",
    help="Ask Saturn from the terminal.",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        # Default to chat mode
        chat(url=None, delay=None)


def _load_settings(url: str | None, delay: float | None) -> Settings:
    try:
        return get_settings(backend_url=url, word_delay=delay)
    except ConfigurationError as exc:
        typer.secho(f"Invalid configuration: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc


def _build_client(settings: Settings) -> BackendClient:
    return BackendClient(settings.backend_url, timeout=settings.request_timeout)


async def _chat(settings: Settings, renderer: Renderer) -> int:
    async with _build_client(settings) as client:
        return await ConversationLoop(client, renderer).run()


async def _ask(settings: Settings, renderer: Renderer, query: str) -> int:
    async with _build_client(settings) as client:
        result = await client.query(query)
    if not result.ok:
        renderer.error(f"{result.failure}: {result.detail}")
        return 1
    await renderer.response(result.response)
    return 0


@app.command()
def chat(
    url: str | None = typer.Option(None, "--url", help="Backend query endpoint"),
    delay: float | None = typer.Option(None, "--delay", min=0, help="Seconds to pause after each word"),
) -> None:
    """Start an interactive conversation."""
    settings = _load_settings(url, delay)
    renderer = create_cli_renderer(settings.accent_color, settings.word_delay)
    logger.debug("chat.start backend={}", settings.backend_url)
    raise typer.Exit(asyncio.run(_chat(settings, renderer)))


@app.command()
def ask(
    query: str = typer.Argument(..., help="Question to send"),
    url: str | None = typer.Option(None, "--url", help="Backend query endpoint"),
    delay: float | None = typer.Option(None, "--delay", min=0, help="Seconds to pause after each word"),
) -> None:
    """Send one query and print the answer."""
    if not query.strip():
        typer.secho(EMPTY_PROMPT_MESSAGE, fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(2)
    settings = _load_settings(url, delay)
    renderer = create_cli_renderer(settings.accent_color, settings.word_delay)
    raise typer.Exit(asyncio.run(_ask(settings, renderer, query)))


if __name__ == "__main__":
    app()
