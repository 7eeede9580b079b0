"""End of the line: anything not handled by a route is a 404."""

from __future__ import annotations

from www.errors import NotFound as NotFoundError
from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext


class NotFound(Middleware):
    """Terminal middleware. Never calls downstream; always yields a 404 error."""

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        return NotFoundError()
