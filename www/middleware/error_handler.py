"""Error boundary: turns every downstream failure into a rendered error page."""

from __future__ import annotations

import structlog

from www.errors import HTTPError, reason_phrase
from www.events import ErrorEvents
from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext

logger = structlog.get_logger()

NOT_FOUND_VIEW = "404-not-found"
INTERNAL_ERROR_VIEW = "500-internal-server-error"

_GENERIC_NOT_FOUND = reason_phrase(404)


class ErrorBoundary(Middleware):
    """Catch thrown exceptions and returned HTTPError values from the rest of the chain.

    404 renders the not-found view, with ``msg`` set only when the error
    carries something more specific than "Not Found". Everything else
    renders the internal-error view (error details hidden in production)
    and is reported to the error listeners. Nothing escapes.
    """

    def __init__(self, events: ErrorEvents | None = None, production: bool = False) -> None:
        self._events = events if events is not None else ErrorEvents()
        self._production = production

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        try:
            outcome = await call_next(context)
        except Exception as exc:
            outcome = HTTPError.from_exception(exc)

        if outcome is not None:
            await self._handle(context, outcome)
        return None

    async def _handle(self, context: RequestContext, error: HTTPError) -> None:
        context.response = None
        context.set_status(error.status_code)

        if context.status == 404:
            msg = None if error.message == _GENERIC_NOT_FOUND else error.message
            await self._render(context, NOT_FOUND_VIEW, {"msg": msg})
            return

        exc = error.cause or error
        logger.error(
            "request_error",
            status=context.status,
            error=error.message,
            path=context.path,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        locals_ = {} if self._production else {"e": error}
        await self._render(context, INTERNAL_ERROR_VIEW, locals_)
        await self._events.emit(error, context)

    async def _render(self, context: RequestContext, view: str, locals_: dict) -> None:
        try:
            if context.render is None:
                raise RuntimeError("no template renderer bound to context")
            await context.render(view, locals_)
        except Exception:
            logger.exception("error_page_render_failed", view=view, status=context.status)
            context.media_type = "text/plain"
            context.response_body = reason_phrase(context.status) or "Error"
