"""Static file serving from the public directory."""

from __future__ import annotations

import os
import stat

import anyio.to_thread
import structlog
from starlette.requests import Request
from starlette.responses import Response
from starlette.staticfiles import StaticFiles

from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext

logger = structlog.get_logger()

_SERVED_METHODS = frozenset({"GET", "HEAD"})


class StaticFileServer(Middleware):
    """Serve files under ``directory``; anything else goes down the chain.

    Requests answered here short-circuit everything else, including the
    access log. Dotfiles are never served. Directory paths serve their
    ``index.html``.
    """

    def __init__(self, directory: str, max_age: int) -> None:
        self._directory = directory
        self._max_age = max_age
        self._files = StaticFiles(directory=directory, check_dir=False)

    @property
    def cache_control(self) -> str:
        return f"max-age={self._max_age}"

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        if context.method not in _SERVED_METHODS or context.request is None:
            return await call_next(context)

        response = await self._lookup(context.request)
        if response is None:
            return await call_next(context)

        response.headers["cache-control"] = self.cache_control
        context.response = response
        logger.debug("static_file_served", path=context.path)
        return None

    async def _lookup(self, request: Request) -> Response | None:
        path = self._files.get_path(request.scope)
        if any(part.startswith(".") and part not in (".", "..") for part in path.split(os.sep)):
            return None

        full_path, stat_result = await anyio.to_thread.run_sync(self._files.lookup_path, path)
        if stat_result is not None and stat.S_ISDIR(stat_result.st_mode):
            full_path, stat_result = await anyio.to_thread.run_sync(
                self._files.lookup_path, os.path.join(path, "index.html")
            )
        if stat_result is None or not stat.S_ISREG(stat_result.st_mode):
            return None
        return self._files.file_response(full_path, stat_result, request.scope)
