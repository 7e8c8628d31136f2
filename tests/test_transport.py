"""Tests for the aiohttp websocket transport against a local server."""

from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from conftest import FakeSlack, handshake_ok
from slackbot.core.models import ConnectionState
from slackbot.slack.connection import ConnectionManager
from slackbot.slack.transport import WebSocketTransport


def _app(frames, close_after_send: bool) -> web.Application:
    async def handler(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        for frame in frames:
            await ws.send_str(frame)
        if close_after_send:
            await ws.close()
        else:
            async for msg in ws:
                await ws.send_str(f"echo:{msg.data}")
        return ws

    app = web.Application()
    app.router.add_get("/ws", handler)
    return app


@pytest.mark.asyncio
async def test_frames_arrive_in_order_and_remote_close_is_reported():
    server = test_utils.TestServer(_app(['{"type": "hello"}', "first", "second"], close_after_send=True))
    await server.start_server()
    transport = WebSocketTransport()
    received: list[str] = []
    closed: list[WebSocketTransport] = []
    try:
        await transport.connect(str(server.make_url("/ws")))
        transport.start(received.append, closed.append)

        await asyncio.wait_for(_until(lambda: closed), 2)
        assert received == ['{"type": "hello"}', "first", "second"]
        assert closed == [transport]
    finally:
        await transport.close()
        await server.close()


@pytest.mark.asyncio
async def test_send_and_local_close_without_drop_report():
    server = test_utils.TestServer(_app(["first"], close_after_send=False))
    await server.start_server()
    transport = WebSocketTransport()
    received: list[str] = []
    closed: list[WebSocketTransport] = []
    try:
        await transport.connect(str(server.make_url("/ws")))
        transport.start(received.append, closed.append)
        await transport.send("ping")
        await asyncio.wait_for(_until(lambda: len(received) == 2), 2)

        await transport.close()
        await transport.close()

        assert received == ["first", "echo:ping"]
        assert closed == []
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_start_requires_connect():
    with pytest.raises(RuntimeError):
        WebSocketTransport().start(lambda frame: None, lambda transport: None)


async def _until(predicate) -> bool:
    while not predicate():
        await asyncio.sleep(0.01)
    return True


@pytest.mark.asyncio
async def test_send_requires_connect():
    with pytest.raises(RuntimeError):
        await WebSocketTransport().send("ping")


@pytest.mark.asyncio
async def test_remote_close_releases_the_session():
    server = test_utils.TestServer(_app(['{"type": "hello"}'], close_after_send=True))
    await server.start_server()
    made: list[WebSocketTransport] = []

    def _transport() -> WebSocketTransport:
        made.append(WebSocketTransport())
        return made[-1]

    slack = FakeSlack([handshake_ok(url=str(server.make_url("/ws")))])
    connection = ConnectionManager(web_client_factory=slack.client, transport_factory=_transport)
    states: list[ConnectionState] = []
    connection.add_state_listener(states.append)
    try:
        await connection.open("xoxb-token")
        await asyncio.wait_for(_until(lambda: connection.state == ConnectionState.DISCONNECTED), 2)
        await connection.close()

        assert ConnectionState.ESTABLISHED in states
        assert made[0]._session is None
        assert made[0]._reader is None
    finally:
        await connection.dispose()
        await server.close()
