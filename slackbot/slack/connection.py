"""Slack RTM connection with an explicit state machine."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, List, Optional, Set

import aiohttp
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web.async_client import AsyncWebClient

from ..core.errors import (
    DisposedError,
    HandshakeError,
    InvalidStateError,
    SendRejectedError,
)
from ..core.models import ConnectionState, Message
from ..sinks.base import MessageSender
from .transport import Transport, WebSocketTransport

LOGGER = logging.getLogger(__name__)

StateListener = Callable[[ConnectionState], None]
MessageListener = Callable[[Message], None]
WebClientFactory = Callable[[str], AsyncWebClient]
TransportFactory = Callable[[], Transport]


def _error_reason(exc: SlackApiError) -> str:
    response = exc.response
    try:
        return str(response.get("error") or "unknown_error")
    except AttributeError:
        return str(exc)


class ConnectionManager(MessageSender):
    """Owns the RTM websocket and the connection state machine.

    The manager is the only writer of ``state``. Listeners are called
    synchronously after every transition and for every inbound message, in
    the order the events happened; listeners that need to do asynchronous work
    must hand it off to a task.
    """

    def __init__(
        self,
        web_client_factory: WebClientFactory = lambda token: AsyncWebClient(token=token),
        transport_factory: TransportFactory = WebSocketTransport,
    ) -> None:
        self._web_client_factory = web_client_factory
        self._transport_factory = transport_factory
        self._web_client: Optional[AsyncWebClient] = None
        self._transport: Optional[Transport] = None
        self._state = ConnectionState.DISCONNECTED
        self._disposed = False
        self._attempt = 0
        self._releases: Set[asyncio.Task[None]] = set()
        self._state_listeners: List[StateListener] = []
        self._message_listeners: List[MessageListener] = []
        self.client_id: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def add_message_listener(self, listener: MessageListener) -> None:
        self._message_listeners.append(listener)

    async def open(self, token: str) -> None:
        """Perform the RTM handshake and open the websocket.

        Raises:
            DisposedError: The manager was disposed.
            InvalidStateError: The manager is not disconnected.
            HandshakeError: Slack rejected the token or the socket failed to open.
        """
        if self._disposed:
            raise DisposedError("Connection manager has been disposed")
        if self._state != ConnectionState.DISCONNECTED:
            raise InvalidStateError(f"Cannot open while {self._state.name}")
        self._attempt += 1
        attempt = self._attempt
        self._set_state(ConnectionState.CONNECTING)

        transport: Optional[Transport] = None
        opened = False
        try:
            web_client = self._web_client_factory(token)
            response = await self._handshake(web_client)
            transport = self._transport_factory()
            try:
                await transport.connect(response["url"])
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                raise HandshakeError(f"websocket connect failed: {exc}") from exc

            if attempt != self._attempt or self._state != ConnectionState.CONNECTING:
                raise HandshakeError("connection closed during handshake")

            self._transport = transport
            self._web_client = web_client
            self.client_id = (response.get("self") or {}).get("id")
            opened = True
            self._set_state(ConnectionState.CONNECTED)
            transport.start(self._on_frame, self._on_transport_closed)
            LOGGER.info("Connected to Slack RTM as %s", self.client_id)
        finally:
            if not opened:
                if transport is not None:
                    await self._release(transport)
                if attempt == self._attempt and self._state == ConnectionState.CONNECTING:
                    self._set_state(ConnectionState.DISCONNECTED)

    async def send(self, message: Message) -> None:
        """Publish a message with ``chat.postMessage``.

        Raises:
            InvalidStateError: The connection is not established.
            SendRejectedError: Slack rejected the message.
        """
        if message is None:
            raise ValueError("message is required")
        if self._disposed:
            raise DisposedError("Connection manager has been disposed")
        web_client = self._web_client
        if self._state != ConnectionState.ESTABLISHED or web_client is None:
            raise InvalidStateError(f"Cannot send while {self._state.name}")

        try:
            response = await web_client.chat_postMessage(**message.to_payload())
        except SlackApiError as exc:
            raise SendRejectedError(_error_reason(exc)) from exc
        if not response.get("ok"):
            raise SendRejectedError(str(response.get("error") or "unknown_error"))

    async def close(self) -> None:
        """Close the connection. A no-op when already disconnected."""
        transport, self._transport = self._transport, None
        if self._state in (ConnectionState.DISCONNECTED, ConnectionState.DISCONNECTING):
            await self._drain_releases()
            return
        self._set_state(ConnectionState.DISCONNECTING)
        try:
            if transport is not None:
                await self._release(transport)
        finally:
            self._web_client = None
            self._set_state(ConnectionState.DISCONNECTED)
        await self._drain_releases()

    async def dispose(self) -> None:
        if self._disposed:
            return
        try:
            await self.close()
        finally:
            self._disposed = True

    async def __aenter__(self) -> "ConnectionManager":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.dispose()

    async def _handshake(self, web_client: AsyncWebClient) -> Any:
        try:
            response = await web_client.rtm_connect()
        except SlackApiError as exc:
            raise HandshakeError(_error_reason(exc)) from exc
        except (SlackClientError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            raise HandshakeError(str(exc) or type(exc).__name__) from exc

        if response.get("ok") not in (True, "true"):
            raise HandshakeError(str(response.get("error") or "unknown_error"))
        if not response.get("url"):
            raise HandshakeError("handshake response is missing url")
        return response

    async def _release(self, transport: Transport) -> None:
        try:
            await transport.close()
        except Exception:
            LOGGER.warning("Ignoring error while closing transport", exc_info=True)

    async def _drain_releases(self) -> None:
        if self._releases:
            await asyncio.gather(*self._releases, return_exceptions=True)

    def _on_frame(self, raw: str) -> None:
        try:
            frame = json.loads(raw)
        except ValueError:
            LOGGER.warning("Ignoring malformed RTM frame: %r", raw[:200])
            return
        if not isinstance(frame, dict):
            return

        frame_type = frame.get("type")
        if frame_type == "hello":
            if self._state == ConnectionState.CONNECTED:
                self._set_state(ConnectionState.ESTABLISHED)
        elif frame_type == "message":
            message = Message.from_event(frame)
            for listener in list(self._message_listeners):
                self._notify(listener, message)
        else:
            LOGGER.debug("Ignoring RTM frame of type %s", frame_type)

    def _on_transport_closed(self, transport: Transport) -> None:
        if self._transport is not transport:
            return
        self._transport = None
        self._web_client = None
        LOGGER.warning("Slack RTM connection dropped")
        release = asyncio.create_task(self._release(transport))
        self._releases.add(release)
        release.add_done_callback(self._releases.discard)
        self._set_state(ConnectionState.DISCONNECTED)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        LOGGER.debug("Connection state %s -> %s", self._state.name, state.name)
        self._state = state
        for listener in list(self._state_listeners):
            self._notify(listener, state)

    def _notify(self, listener: Callable[[Any], None], value: Any) -> None:
        try:
            listener(value)
        except Exception:
            LOGGER.exception("Connection listener failed")
