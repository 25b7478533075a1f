"""Interactive terminal surface for Saturn."""

from .app import app
from .loop import ConversationLoop
from .render import Renderer

__all__ = [
    "ConversationLoop",
    "Renderer",
    "app",
]
