import asyncio
import io
import json
import re

import httpx
import pytest
from rich.console import Console

from saturn.cli.loop import EMPTY_PROMPT_MESSAGE, ConversationLoop
from saturn.cli.render import Renderer
from saturn.client import BackendClient, QueryResult

ANSI_WORD = re.compile(r"\x1b\[38;2;23;184;144m(.*?)\x1b\[0m")


class FakeClient:
    def __init__(self, replies: dict[str, QueryResult]) -> None:
        self.replies = replies
        self.queries: list[str] = []

    async def query(self, query: str) -> QueryResult:
        self.queries.append(query)
        return self.replies[query]


class ScriptedPrompt:
    def __init__(self, *inputs: object) -> None:
        self._inputs = list(inputs)
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        item = self._inputs.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item  # type: ignore[return-value]


def _setup(prompt: ScriptedPrompt, replies: dict[str, QueryResult] | None = None):
    out = io.StringIO()
    console_file = io.StringIO()
    renderer = Renderer(
        word_delay=0,
        console=Console(file=console_file, force_terminal=False, width=100),
        out=out,
        prompt=prompt,
    )
    client = FakeClient(replies or {})
    return ConversationLoop(client, renderer), client, out, console_file  # type: ignore[arg-type]


def _streamed_words(out: io.StringIO) -> list[str]:
    # first two segments are the banner and the gutter
    return [segment.strip() for segment in ANSI_WORD.findall(out.getvalue())[2:]]


@pytest.mark.asyncio
async def test_hello_turn_renders_response_then_prompts_again() -> None:
    prompt = ScriptedPrompt("hello", "exit")
    loop, client, out, console_file = _setup(prompt, {"hello": QueryResult.success("Hi there")})

    status = await loop.run()

    assert status == 0
    assert client.queries == ["hello"]
    assert prompt.calls == 2
    assert _streamed_words(out) == ["Hi", "there"]
    assert out.getvalue().endswith("\n\n")
    assert "Web Search:" in console_file.getvalue()
    assert "Goodbye!" in console_file.getvalue()


@pytest.mark.asyncio
async def test_backend_error_text_is_streamed_like_a_response() -> None:
    prompt = ScriptedPrompt("broken", "exit")
    loop, client, out, _ = _setup(prompt, {"broken": QueryResult.success("no results")})

    await loop.run()

    assert client.queries == ["broken"]
    assert " ".join(_streamed_words(out)) == "no results"


@pytest.mark.asyncio
async def test_empty_input_reprompts_without_request() -> None:
    prompt = ScriptedPrompt("", "exit")
    loop, client, _, console_file = _setup(prompt)

    status = await loop.run()

    assert status == 0
    assert client.queries == []
    assert prompt.calls == 2
    assert EMPTY_PROMPT_MESSAGE in console_file.getvalue()


@pytest.mark.asyncio
@pytest.mark.parametrize("cancel", [KeyboardInterrupt(), EOFError()])
async def test_cancellation_exits_cleanly_without_request(cancel: BaseException) -> None:
    prompt = ScriptedPrompt(cancel)
    loop, client, _, console_file = _setup(prompt)

    assert await loop.run() == 0
    assert client.queries == []
    assert "Goodbye!" in console_file.getvalue()


@pytest.mark.asyncio
async def test_exit_command_never_queries() -> None:
    prompt = ScriptedPrompt("exit")
    loop, client, _, _ = _setup(prompt)

    assert await loop.run() == 0
    assert client.queries == []
    assert prompt.calls == 1


@pytest.mark.asyncio
async def test_transport_failure_is_reported_and_loop_continues() -> None:
    prompt = ScriptedPrompt("down", "hello", "exit")
    replies = {
        "down": QueryResult.failed("transport", "connection refused"),
        "hello": QueryResult.success("Hi there"),
    }
    loop, client, out, console_file = _setup(prompt, replies)

    assert await loop.run() == 0
    assert client.queries == ["down", "hello"]
    assert "Error: transport: connection refused" in console_file.getvalue()
    assert _streamed_words(out) == ["Hi", "there"]


@pytest.mark.asyncio
async def test_empty_response_renders_an_empty_turn() -> None:
    prompt = ScriptedPrompt("silent", "exit")
    loop, _, out, _ = _setup(prompt, {"silent": QueryResult.success("")})

    await loop.run()

    assert _streamed_words(out) == []
    assert out.getvalue().endswith("\n\n")


class RecordingIndicator:
    def __init__(self, events: list[str]) -> None:
        self.events = events

    def stop(self, label: str | None = None) -> None:
        self.events.append(f"stop {label}")


def _record_turn(renderer: Renderer, events: list[str]) -> None:
    def busy() -> RecordingIndicator:
        events.append("start")
        return RecordingIndicator(events)

    original_write = renderer.write

    def write(text: str) -> None:
        segments = ANSI_WORD.findall(text)
        if segments:
            events.append(f"write {segments[0]}")
        original_write(text)

    renderer.busy = busy  # type: ignore[method-assign]
    renderer.write = write  # type: ignore[method-assign]


def _http_setup(prompt: ScriptedPrompt, handler):
    out = io.StringIO()
    renderer = Renderer(
        word_delay=0,
        console=Console(file=io.StringIO(), force_terminal=False, width=100),
        out=out,
        prompt=prompt,
    )
    client = BackendClient("http://localhost:2223/query", transport=httpx.MockTransport(handler))
    return ConversationLoop(client, renderer), renderer, out


@pytest.mark.asyncio
async def test_hello_sends_query_body_and_renders_words_over_http() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        assert request.headers["content-type"] == "application/json"
        return httpx.Response(200, json={"query": "hello", "response": "Hi there"})

    loop, _, out = _http_setup(ScriptedPrompt("hello", "exit"), handler)
    async with loop.client:
        assert await loop.run() == 0

    assert bodies == [{"query": "hello"}]
    assert _streamed_words(out) == ["Hi", "there"]


@pytest.mark.asyncio
async def test_broken_renders_backend_error_field_over_http() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(205, json={"query": "broken", "error": "no results"})

    loop, _, out = _http_setup(ScriptedPrompt("broken", "exit"), handler)
    async with loop.client:
        await loop.run()

    assert " ".join(_streamed_words(out)) == "no results"


@pytest.mark.asyncio
async def test_empty_input_sends_nothing_over_http() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    prompt = ScriptedPrompt("", "exit")
    loop, _, _ = _http_setup(prompt, handler)
    async with loop.client:
        assert await loop.run() == 0

    assert prompt.calls == 2


@pytest.mark.asyncio
async def test_busy_indicator_wraps_query_and_stops_before_first_word() -> None:
    events: list[str] = []

    def handler(_request: httpx.Request) -> httpx.Response:
        events.append("query")
        return httpx.Response(200, json={"response": "Hi there"})

    loop, renderer, _ = _http_setup(ScriptedPrompt(), handler)
    _record_turn(renderer, events)
    async with loop.client:
        await loop.turn("hello")

    assert events == [
        "start",
        "query",
        "stop [green]Web Search:[/green]",
        "write │",
        "write Hi ",
        "write there ",
    ]


@pytest.mark.asyncio
async def test_failed_turn_stops_indicator_without_completion_label() -> None:
    events: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    loop, renderer, out = _http_setup(ScriptedPrompt(), handler)
    _record_turn(renderer, events)
    async with loop.client:
        await loop.turn("hello")

    assert events == ["start", "stop [red]Web Search:[/red]"]
    assert out.getvalue() == ""


@pytest.mark.asyncio
async def test_interrupted_query_stops_indicator_without_label() -> None:
    events: list[str] = []

    class _InterruptedClient:
        async def query(self, _query: str) -> QueryResult:
            raise asyncio.CancelledError

    renderer = Renderer(
        word_delay=0,
        console=Console(file=io.StringIO(), force_terminal=False),
        out=io.StringIO(),
    )
    _record_turn(renderer, events)
    loop = ConversationLoop(_InterruptedClient(), renderer)  # type: ignore[arg-type]

    with pytest.raises(asyncio.CancelledError):
        await loop.turn("hello")

    assert events == ["start", "stop None"]
