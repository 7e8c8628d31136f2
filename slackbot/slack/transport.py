"""Websocket transport used by the RTM connection."""

from __future__ import annotations

import abc
import asyncio
import logging
from asyncio import Task
from typing import Callable, Optional

import aiohttp

LOGGER = logging.getLogger(__name__)

FrameCallback = Callable[[str], None]
ClosedCallback = Callable[["Transport"], None]


class Transport(abc.ABC):
    """A bidirectional, message-framed connection to a negotiated URL."""

    @abc.abstractmethod
    async def connect(self, url: str) -> None:
        """Open the connection without delivering any frames yet."""

    @abc.abstractmethod
    def start(self, on_frame: FrameCallback, on_closed: ClosedCallback) -> None:
        """Begin delivering inbound frames, one at a time and in order.

        ``on_closed`` fires once if the connection drops without ``close()``.
        """

    @abc.abstractmethod
    async def send(self, data: str) -> None:
        """Write one text frame.

        Part of the adapter contract for raw RTM frames. Chat messages are
        posted through the Web API by ``ConnectionManager.send`` instead.
        """

    @abc.abstractmethod
    async def close(self) -> None:
        """Release the connection. Safe to call more than once."""


class WebSocketTransport(Transport):
    """aiohttp websocket with a single reader task."""

    def __init__(self, heartbeat: float = 30.0) -> None:
        self._heartbeat = heartbeat
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader: Optional[Task[None]] = None
        self._closing = False

    async def connect(self, url: str) -> None:
        self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(url, heartbeat=self._heartbeat)
        except BaseException:
            await self._session.close()
            self._session = None
            raise
        LOGGER.debug("Websocket connected to %s", url)

    def start(self, on_frame: FrameCallback, on_closed: ClosedCallback) -> None:
        if self._ws is None:
            raise RuntimeError("Transport is not connected")
        if self._reader is not None:
            raise RuntimeError("Transport already started")
        self._reader = asyncio.create_task(self._receive(self._ws, on_frame, on_closed))

    async def send(self, data: str) -> None:
        if self._ws is None or self._ws.closed:
            raise RuntimeError("Transport is not connected")
        await self._ws.send_str(data)

    async def close(self) -> None:
        self._closing = True
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            await asyncio.gather(reader, return_exceptions=True)
        ws, self._ws = self._ws, None
        session, self._session = self._session, None
        try:
            if ws is not None:
                await ws.close()
        finally:
            if session is not None:
                await session.close()

    async def _receive(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        on_frame: FrameCallback,
        on_closed: ClosedCallback,
    ) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._emit(on_frame, msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    LOGGER.warning("Websocket error: %s", ws.exception())
                    break
        except aiohttp.ClientError:
            LOGGER.warning("Websocket receive failed", exc_info=True)
        if not self._closing:
            LOGGER.info("Websocket closed by remote (code=%s)", ws.close_code)
            on_closed(self)

    def _emit(self, on_frame: FrameCallback, data: str) -> None:
        try:
            on_frame(data)
        except Exception:
            LOGGER.exception("Frame callback failed")
