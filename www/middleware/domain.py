"""Domain extraction middleware."""

from __future__ import annotations

from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext


def bare_domain(host: str) -> str:
    """Host with a leading ``www.`` removed; any port is kept."""
    return host.removeprefix("www.")


class DomainExtractor(Middleware):
    """Put the bare domain into ``state["domain"]`` for templates (site nav links)."""

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        context.state["domain"] = bare_domain(context.host)
        return await call_next(context)
