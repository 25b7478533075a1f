"""Interactive conversation loop for Saturn."""

from __future__ import annotations

from loguru import logger

from saturn.client import BackendClient

from .render import DONE_LABEL, Renderer

EXIT_COMMAND = "exit"
EMPTY_PROMPT_MESSAGE = "Please enter a prompt."


class ConversationLoop:
    """Prompt, query, render; repeat until the user leaves."""

    def __init__(self, client: BackendClient, renderer: Renderer) -> None:
        self.client = client
        self.renderer = renderer

    async def run(self) -> int:
        """Drive turns until exit and return the process exit status."""
        self.renderer.banner()
        while True:
            try:
                user_input = await self.renderer.get_user_input()
            except (KeyboardInterrupt, EOFError):
                logger.debug("chat.cancelled")
                break
            if user_input == EXIT_COMMAND:
                break
            if not user_input:
                self.renderer.validation(EMPTY_PROMPT_MESSAGE)
                continue
            await self.turn(user_input)

        self.renderer.farewell()
        return 0

    async def turn(self, query: str) -> None:
        """Run one query through the backend and render what comes back."""
        indicator = self.renderer.busy()
        try:
            result = await self.client.query(query)
        except BaseException:
            indicator.stop()
            raise

        if not result.ok:
            indicator.stop(f"[red]{DONE_LABEL}[/red]")
            self.renderer.error(f"{result.failure}: {result.detail}")
            return
        indicator.stop(f"[green]{DONE_LABEL}[/green]")
        await self.renderer.response(result.response)
