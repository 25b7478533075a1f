"""CLI renderer for Saturn."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from rich import get_console
from rich.console import Console
from rich.markup import escape
from rich.status import Status

from saturn.config import DEFAULT_ACCENT_COLOR

BANNER = "  └────────────────────╼"
GUTTER = "│"
INTRO = "Starting new conversation"
PLACEHOLDER = "send a message ('exit' to quit)"
USER_LABEL = "You:"
THINKING_LABEL = "THINKING..."
DONE_LABEL = "Web Search:"
FAREWELL = "Goodbye!"

ESC = "\x1b"
RESET = f"{ESC}[0m"

PromptFunc = Callable[[], Awaitable[str]]


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Convert ``RRGGBB`` (leading ``#`` allowed) into an RGB triple."""
    value = int(hex_color.lstrip("#"), 16)
    return (value >> 16) & 255, (value >> 8) & 255, value & 255


def colorize(text: str, hex_color: str = DEFAULT_ACCENT_COLOR) -> str:
    """Wrap text in a 24-bit foreground escape followed by a reset."""
    r, g, b = hex_to_rgb(hex_color)
    return f"{ESC}[38;2;{r};{g};{b}m{text}{RESET}"


class BusyIndicator:
    """Transient spinner shown while a turn waits on the backend."""

    def __init__(self, console: Console, label: str = THINKING_LABEL) -> None:
        self._console = console
        self._status: Status = console.status(label)

    def start(self) -> None:
        self._status.start()

    def stop(self, label: str | None = None) -> None:
        """Remove the spinner and leave ``label``, if any, in its place."""
        self._status.stop()
        if label:
            self._console.print(label)


class Renderer:
    """CLI renderer: rich for semantic labels, raw ANSI for accent output."""

    def __init__(
        self,
        accent_color: str = DEFAULT_ACCENT_COLOR,
        word_delay: float = 0.1,
        *,
        console: Console | None = None,
        out: TextIO | None = None,
        prompt: PromptFunc | None = None,
    ) -> None:
        self.accent_color = accent_color
        self.word_delay = word_delay
        self.console: Console = console or get_console()
        self._out = out
        self._prompt = prompt
        self._prompt_session: PromptSession[str] | None = None

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    def write(self, text: str) -> None:
        self.out.write(text)
        self.out.flush()

    def echo(self, text: str) -> None:
        """Write one accent-colored line."""
        self.write(colorize(text, self.accent_color) + "\n")

    def banner(self) -> None:
        self.echo(BANNER)
        self.console.print(f"[bold]{INTRO}[/bold]")

    def validation(self, message: str) -> None:
        self.console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {escape(message)}", highlight=False)

    def farewell(self) -> None:
        self.console.print(FAREWELL)

    def busy(self) -> BusyIndicator:
        indicator = BusyIndicator(self.console)
        indicator.start()
        return indicator

    async def stream(self, text: str) -> list[str]:
        """Emit ``text`` one colored word at a time.

        Each word is followed by a space and then by ``word_delay`` seconds of
        silence; the coroutine returns only after the last pause.
        """
        words = text.split()
        for word in words:
            self.write(colorize(f"{word} ", self.accent_color))
            await asyncio.sleep(self.word_delay)
        return words

    async def response(self, text: str) -> None:
        """Render one backend response followed by the turn separator."""
        self.echo(GUTTER)
        await self.stream(text)
        self.write("\n\n")

    async def get_user_input(self) -> str:
        """Prompt for one line; Ctrl-C and Ctrl-D propagate as cancellation."""
        if self._prompt is not None:
            return await self._prompt()
        if self._prompt_session is None:
            self._prompt_session = PromptSession()
        with patch_stdout(raw=True):
            return await self._prompt_session.prompt_async(
                FormattedText([("ansicyan bold", USER_LABEL), ("", " ")]),
                placeholder=FormattedText([("ansibrightblack", PLACEHOLDER)]),
            )


def create_cli_renderer(accent_color: str = DEFAULT_ACCENT_COLOR, word_delay: float = 0.1) -> Renderer:
    """Create and return a Renderer instance."""
    return Renderer(accent_color, word_delay)
