"""Central sink for errors caught by the service, sinks and connection."""

from __future__ import annotations

import logging
import traceback
from typing import Callable, List, Optional, TextIO

LOGGER = logging.getLogger(__name__)

ErrorListener = Callable[[str, BaseException], None]


class ErrorChannel:
    """Logs caught errors and fans them out to registered listeners.

    In console mode the traceback is also written to ``console_stream`` so an
    operator running the bot interactively sees failures immediately.
    """

    def __init__(self, console_stream: Optional[TextIO] = None) -> None:
        self._console_stream = console_stream
        self._listeners: List[ErrorListener] = []

    def add_listener(self, listener: ErrorListener) -> None:
        self._listeners.append(listener)

    def report(self, source: str, exc: BaseException) -> None:
        LOGGER.error("%s: %s", source, exc, exc_info=exc)
        if self._console_stream is not None:
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=self._console_stream)
        for listener in list(self._listeners):
            try:
                listener(source, exc)
            except Exception:
                LOGGER.exception("Error listener failed for %s", source)
