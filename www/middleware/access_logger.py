"""Access logger middleware: time the rest of the chain, record one access row."""

from __future__ import annotations

import time

import structlog

from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext
from www.store.access import AccessLogSink, AccessRecord

logger = structlog.get_logger()

FAILURE_POLICIES = ("drop", "retry", "propagate")


class AccessLogger(Middleware):
    """Record method, path, status and duration of every request that reaches it.

    Sits outside the error boundary, so the status it records is the
    final one. Static files are served further out and never logged.

    Sink failures follow ``failure_policy``:
    - drop: log and carry on
    - retry: try ``retries`` more times, then drop
    - propagate: re-raise to the host server
    """

    def __init__(self, sink: AccessLogSink, failure_policy: str = "drop", retries: int = 2) -> None:
        if failure_policy not in FAILURE_POLICIES:
            raise ValueError(f"unknown access log failure policy: {failure_policy!r}")
        self._sink = sink
        self._policy = failure_policy
        self._retries = retries

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        start = time.monotonic()
        try:
            outcome = await call_next(context)
        except Exception:
            await self._record(context, _elapsed_ms(start), status=500)
            raise

        status = outcome.status_code if outcome is not None else None
        await self._record(context, _elapsed_ms(start), status=status)
        return outcome

    async def _record(self, context: RequestContext, duration_ms: float, status: int | None) -> None:
        record = AccessRecord.from_context(context, duration_ms, status=status)
        attempts = 1 + (self._retries if self._policy == "retry" else 0)
        for attempt in range(1, attempts + 1):
            try:
                await self._sink.access(record)
                return
            except Exception:
                if self._policy == "propagate":
                    raise
                logger.warning(
                    "access_log_write_failed",
                    attempt=attempt,
                    attempts=attempts,
                    request_id=context.request_id,
                    exc_info=True,
                )
        logger.error("access_log_dropped", path=record.path, request_id=context.request_id)


def _elapsed_ms(start: float) -> float:
    return max((time.monotonic() - start) * 1000, 0.0)
