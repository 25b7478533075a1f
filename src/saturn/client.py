"""HTTP client for the Saturn query backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import httpx
from loguru import logger

from .config import DEFAULT_BACKEND_URL
from .errors import BackendError

FailureKind = Literal["transport", "status", "decode"]

JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass(frozen=True)
class QueryResult:
    """Outcome of one backend call.

    Either ``response`` holds the display text, or ``failure`` names what went
    wrong and ``detail`` describes it.
    """

    response: str = ""
    failure: FailureKind | None = None
    detail: str = ""

    @classmethod
    def success(cls, response: str) -> QueryResult:
        return cls(response=response)

    @classmethod
    def failed(cls, kind: FailureKind, detail: str) -> QueryResult:
        return cls(failure=kind, detail=detail)

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self) -> str:
        """Return the response text or raise ``BackendError``."""
        if self.failure is not None:
            raise BackendError(self.failure, self.detail)
        return self.response


def extract_response(reply: dict[str, Any]) -> str:
    """Pick the display text out of a decoded backend reply.

    ``response`` wins over ``error``; a reply carrying neither is an empty turn.
    """
    response = reply.get("response")
    if response:
        return str(response)
    error = reply.get("error")
    if error is not None:
        return str(error)
    return ""


class BackendClient:
    """
    Async client for the query endpoint.

    One ``query`` call issues exactly one POST and never raises for
    network, status or decoding problems; those come back as a failed
    ``QueryResult``.

    Usage:
        async with BackendClient() as client:
            result = await client.query("hello")
            if result.ok:
                print(result.response)
    """

    def __init__(
        self,
        url: str = DEFAULT_BACKEND_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=JSON_HEADERS,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def query(self, query: str) -> QueryResult:
        client = self._get_client()
        logger.debug("backend.request url={} chars={}", self.url, len(query))

        try:
            response = await client.post(self.url, json={"query": query})
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("backend.transport.error url={} error={!r}", self.url, exc)
            return QueryResult.failed("transport", str(exc) or type(exc).__name__)

        logger.debug("backend.response url={} status={}", self.url, response.status_code)
        if response.is_error:
            detail = f"http {response.status_code}"
            body = response.text.strip()
            if body:
                detail = f"{detail}: {body}"
            logger.warning("backend.status.error url={} status={}", self.url, response.status_code)
            return QueryResult.failed("status", detail)

        try:
            reply = response.json()
        except ValueError as exc:
            logger.warning("backend.decode.error url={} error={}", self.url, exc)
            return QueryResult.failed("decode", f"invalid json response: {exc!s}")
        if not isinstance(reply, dict):
            return QueryResult.failed("decode", f"expected a json object, got {type(reply).__name__}")

        return QueryResult.success(extract_response(reply))
