"""Flash messages: a value set now is shown on the next request only."""

from __future__ import annotations

from typing import Any

import structlog

from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext

logger = structlog.get_logger()


class Flash:
    """Per-request flash handle.

    ``value`` is what the previous request stored (already removed from the
    session). ``set()`` stores a value for the next request.
    """

    def __init__(self, value: Any, session: dict | None, key: str) -> None:
        self.value = value
        self._session = session
        self._key = key
        self._pending: Any = None

    @property
    def persistent(self) -> bool:
        return self._session is not None

    @property
    def pending(self) -> Any:
        return self._pending

    def set(self, value: Any) -> None:
        self._pending = value
        if self._session is not None:
            self._session[self._key] = value


class FlashMessages(Middleware):
    """Expose the session's flash value as ``context.flash`` and ``state["flash"]``.

    Needs Starlette's SessionMiddleware in front of the app. Without a
    session the flash only lives for the current request.
    """

    def __init__(self, key: str = "flash") -> None:
        self._key = key
        self._warned = False

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        session = _session_of(context)
        if session is None and not self._warned:
            logger.debug("flash_without_session", key=self._key)
            self._warned = True

        previous = session.pop(self._key, None) if session is not None else None
        context.flash = Flash(previous, session, self._key)
        context.state["flash"] = previous
        return await call_next(context)


def _session_of(context: RequestContext) -> dict | None:
    request = context.request
    if request is None or "session" not in request.scope:
        return None
    return request.session
