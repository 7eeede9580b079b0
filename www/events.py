"""Error event listeners, notified after an internal error page is rendered.

The error boundary logs the error itself; listeners are for reporting
elsewhere (alerting, error trackers).
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any

import structlog

from www.errors import HTTPError

logger = structlog.get_logger()

ErrorListener = Callable[[HTTPError, Any], Any]


class ErrorEvents:
    """Registry of error listeners. Listeners may be plain functions or coroutines."""

    def __init__(self) -> None:
        self._listeners: list[ErrorListener] = []

    def add_listener(self, listener: ErrorListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ErrorListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def __len__(self) -> int:
        return len(self._listeners)

    async def emit(self, error: HTTPError, context: Any) -> None:
        """Call every listener. A failing listener is logged and skipped."""
        for listener in list(self._listeners):
            try:
                result = listener(error, context)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("error_listener_failed", listener=getattr(listener, "__name__", repr(listener)))
