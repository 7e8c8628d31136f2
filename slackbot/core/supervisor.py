"""Keeps the RTM connection alive while the service is running."""

from __future__ import annotations

import asyncio
import logging
from asyncio import Task
from typing import Awaitable, Callable, Optional

from .models import ConnectionState

LOGGER = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 5.0

ConnectFn = Callable[[], Awaitable[None]]
SleepFn = Callable[[float], Awaitable[None]]


class ReconnectSupervisor:
    """Schedules a reconnect after a fixed delay whenever the connection drops.

    There is no backoff and no attempt cap: a failed attempt leaves the
    connection disconnected, which schedules the next attempt.
    """

    def __init__(
        self,
        connect: ConnectFn,
        is_running: Callable[[], bool],
        delay: float = DEFAULT_RECONNECT_DELAY,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._connect = connect
        self._is_running = is_running
        self._delay = delay
        self._sleep = sleep
        self._pending: Optional[Task[None]] = None
        self._stopped = False

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def on_state_changed(self, state: ConnectionState) -> None:
        if state == ConnectionState.ESTABLISHED:
            LOGGER.info("Connection to Slack established.")
            return
        if state != ConnectionState.DISCONNECTED or self._stopped or not self._is_running():
            return
        # A failing attempt reports DISCONNECTED from inside the pending task.
        if self.pending and asyncio.current_task() is not self._pending:
            LOGGER.debug("Reconnect already scheduled")
            return
        LOGGER.info("Connection to Slack lost. Reconnecting in %s seconds.", self._delay)
        self._pending = asyncio.create_task(self._reconnect_later())

    async def stop(self) -> None:
        self._stopped = True
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()
            await asyncio.gather(pending, return_exceptions=True)

    async def _reconnect_later(self) -> None:
        await self._sleep(self._delay)
        if not self._is_running():
            LOGGER.info("Service stopping; skipping reconnect")
            return
        LOGGER.info("Reconnecting")
        await self._connect()
