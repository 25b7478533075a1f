"""Application-level exception types for Saturn."""

from __future__ import annotations


class SaturnError(Exception):
    """Base exception for Saturn."""


class ConfigurationError(SaturnError):
    """Raised when settings cannot be used as given."""


class BackendError(SaturnError):
    """Raised when a backend call failed and the caller asked for its value."""

    def __init__(self, kind: str, detail: str) -> None:
        super().__init__(f"{kind}: {detail}")
        self.kind = kind
        self.detail = detail
