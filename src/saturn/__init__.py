"""Saturn - a terminal client for the Saturn query service."""

from .client import BackendClient, QueryResult

__version__ = "0.1.0"

__all__ = ["BackendClient", "QueryResult"]
