"""Shared fakes for connection, supervisor, pipeline and service tests."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest
from slack_sdk.errors import SlackApiError

from slackbot.core.error_channel import ErrorChannel
from slackbot.core.models import ConnectionState, Message, SinkResult
from slackbot.sinks.base import ChatMessageSink, MessageSender
from slackbot.slack.connection import ConnectionManager
from slackbot.slack.transport import Transport

HELLO = '{"type": "hello"}'


def handshake_ok(url: str = "wss://rtm.example/ws", bot_id: str = "U0BOT") -> Dict[str, Any]:
    return {"ok": True, "url": url, "self": {"id": bot_id, "name": "bot"}}


def handshake_rejected(error: str = "invalid_auth") -> SlackApiError:
    return SlackApiError("The request to the Slack API failed.", {"ok": False, "error": error})


class FakeTransport(Transport):
    """In-memory transport; tests push frames with ``deliver``."""

    def __init__(self, auto_hello: bool = False, connect_error: Optional[BaseException] = None) -> None:
        self.auto_hello = auto_hello
        self.connect_error = connect_error
        self.close_error: Optional[BaseException] = None
        self.url: Optional[str] = None
        self.started = False
        self.closed = False
        self.sent: List[str] = []
        self._on_frame: Optional[Callable[[str], None]] = None
        self._on_closed: Optional[Callable[[Transport], None]] = None

    async def connect(self, url: str) -> None:
        self.url = url
        if self.connect_error is not None:
            raise self.connect_error

    def start(self, on_frame, on_closed) -> None:
        self.started = True
        self._on_frame = on_frame
        self._on_closed = on_closed
        if self.auto_hello:
            asyncio.get_running_loop().call_soon(self.deliver, HELLO)

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error

    def deliver(self, raw: str) -> None:
        assert self._on_frame is not None, "transport not started"
        self._on_frame(raw)

    def drop(self) -> None:
        assert self._on_closed is not None, "transport not started"
        self._on_closed(self)


class FakeSlack:
    """Scripted Slack Web API shared by every web client the manager creates.

    ``handshakes`` holds the outcome of successive ``rtm.connect`` calls: a
    response dict, an exception to raise, or an ``asyncio.Event`` to wait on
    before succeeding. When exhausted, handshakes succeed.
    """

    def __init__(self, handshakes: Optional[List[Any]] = None) -> None:
        self.handshakes: List[Any] = list(handshakes or [])
        self.handshake_calls = 0
        self.tokens: List[str] = []
        self.posted: List[Dict[str, Any]] = []
        self.post_error: Optional[BaseException] = None

    def client(self, token: str) -> "FakeWebClient":
        self.tokens.append(token)
        return FakeWebClient(self)


class FakeWebClient:
    def __init__(self, slack: FakeSlack) -> None:
        self._slack = slack

    async def rtm_connect(self) -> Dict[str, Any]:
        self._slack.handshake_calls += 1
        outcome = self._slack.handshakes.pop(0) if self._slack.handshakes else handshake_ok()
        if isinstance(outcome, asyncio.Event):
            await outcome.wait()
            return handshake_ok()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def chat_postMessage(self, **payload: Any) -> Dict[str, Any]:
        if self._slack.post_error is not None:
            raise self._slack.post_error
        self._slack.posted.append(payload)
        return {"ok": True, "channel": payload.get("channel"), "ts": "1700000000.000100"}


class RecordingSender(MessageSender):
    def __init__(self) -> None:
        self.sent: List[Message] = []

    async def send(self, message: Message) -> None:
        self.sent.append(message)


class RecordingSink(ChatMessageSink):
    """Sink returning a fixed result and recording the order it was called in."""

    def __init__(self, name: str, result: SinkResult, calls: List[str]) -> None:
        self.name = name
        self.result = result
        self.calls = calls

    async def initialize(self, name: str) -> None:
        self.name = name

    async def process_message(self, sender: MessageSender, message: Message) -> SinkResult:
        self.calls.append(self.name)
        return self.result


class FaultySink(ChatMessageSink):
    async def initialize(self, name: str) -> None:
        return None

    async def process_message(self, sender: MessageSender, message: Message) -> SinkResult:
        raise RuntimeError("issue tracker unreachable")


class EchoSink(ChatMessageSink):
    """Answers ``ping`` with ``pong``."""

    async def initialize(self, name: str) -> None:
        return None

    async def process_message(self, sender: MessageSender, message: Message) -> SinkResult:
        if message.text.strip() != "ping":
            return SinkResult.CONTINUE
        await sender.send(message.create_reply("pong"))
        return SinkResult.COMPLETE


async def ready(value: Any) -> Any:
    return value


async def settle(predicate: Callable[[], bool], rounds: int = 500) -> bool:
    """Yield to the event loop until ``predicate`` holds or ``rounds`` run out."""
    for _ in range(rounds):
        if predicate():
            return True
        await asyncio.sleep(0)
    return predicate()


@pytest.fixture
def fake_slack() -> FakeSlack:
    return FakeSlack()


@pytest.fixture
def transports() -> List[FakeTransport]:
    return []


@pytest.fixture
def connection(fake_slack: FakeSlack, transports: List[FakeTransport]) -> ConnectionManager:
    def _transport() -> FakeTransport:
        transport = FakeTransport()
        transports.append(transport)
        return transport

    return ConnectionManager(web_client_factory=fake_slack.client, transport_factory=_transport)


@pytest.fixture
def states(connection: ConnectionManager) -> List[ConnectionState]:
    recorded: List[ConnectionState] = []
    connection.add_state_listener(recorded.append)
    return recorded


@pytest.fixture
def error_log() -> List[tuple]:
    return []


@pytest.fixture
def error_channel(error_log: List[tuple]) -> ErrorChannel:
    channel = ErrorChannel()
    channel.add_listener(lambda source, exc: error_log.append((source, exc)))
    return channel
