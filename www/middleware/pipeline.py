"""Ordered middleware chain framework."""

from __future__ import annotations

import abc
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Union
from uuid import uuid4

import structlog
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from www.errors import HTTPError

logger = structlog.get_logger()

# None means "handled", an HTTPError value means the request failed.
Outcome = Union[HTTPError, None]
CallNext = Callable[["RequestContext"], Awaitable[Outcome]]
RenderFn = Callable[..., Awaitable[None]]


@dataclass
class RequestContext:
    """Mutable per-request state threaded through the middleware chain.

    Status starts at 404 and flips to 200 the first time a body is set,
    so a request nothing answered is a 404.
    """

    request: Request | None = None
    request_id: str = ""
    method: str = "GET"
    path: str = "/"
    host: str = ""
    body: Any = None
    path_params: dict[str, Any] = field(default_factory=dict)

    status: int = 404
    media_type: str | None = None
    headers: MutableHeaders = field(default_factory=MutableHeaders)
    response: Response | None = None
    _body: Any = field(default=None, init=False, repr=False)
    _status_explicit: bool = field(default=False, init=False, repr=False)

    state: dict[str, Any] = field(default_factory=dict)
    render: RenderFn | None = None
    flash: Any = None

    def __post_init__(self):
        if not self.request_id:
            self.request_id = uuid4().hex[:8]

    @classmethod
    def from_request(cls, request: Request) -> RequestContext:
        return cls(
            request=request,
            method=request.method,
            path=request.url.path,
            host=request.headers.get("host", ""),
        )

    @property
    def response_body(self) -> Any:
        return self._body

    @response_body.setter
    def response_body(self, value: Any) -> None:
        self._body = value
        if not self._status_explicit and self.status == 404:
            self.status = 200

    def set_status(self, status: int) -> None:
        self.status = status
        self._status_explicit = True

    @property
    def final_status(self) -> int:
        if self.response is not None:
            return self.response.status_code
        return self.status

    def to_response(self) -> Response:
        """Build the final response from the outbound fields."""
        if self.response is not None:
            response = self.response
        elif isinstance(self._body, (dict, list)):
            response = JSONResponse(self._body, status_code=self.status)
        else:
            content = self._body if self._body is not None else b""
            response = Response(content=content, status_code=self.status, media_type=self.media_type)
        for name, value in self.headers.items():
            response.headers[name] = value
        return response


class Middleware(abc.ABC):
    """Base class for middleware in the pipeline."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abc.abstractmethod
    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        """Handle the request, usually awaiting ``call_next(context)``.

        Return None when handled, or an HTTPError for the error boundary.
        """
        ...


async def _end_of_chain(context: RequestContext) -> Outcome:
    return None


class MiddlewarePipeline:
    """Ordered list of middleware, each wrapping the rest of the chain."""

    def __init__(self) -> None:
        self._middleware: list[Middleware] = []
        self._enabled: dict[str, bool] = {}
        self._handler: CallNext | None = None

    def add(self, middleware: Middleware, enabled: bool = True) -> None:
        """Add a middleware to the inner end of the pipeline."""
        self._middleware.append(middleware)
        self._enabled[middleware.name] = enabled
        self._handler = None
        logger.info("middleware_registered", name=middleware.name, enabled=enabled)

    def set_enabled(self, name: str, enabled: bool) -> None:
        """Enable or disable a middleware by name."""
        if name in self._enabled:
            self._enabled[name] = enabled
            self._handler = None

    def get_middleware(self, cls: type[Middleware]) -> Middleware | None:
        for mw in self._middleware:
            if isinstance(mw, cls):
                return mw
        return None

    @property
    def names(self) -> list[str]:
        return [mw.name for mw in self._middleware]

    def compose(self) -> CallNext:
        """Wrap enabled middleware innermost-first into a single handler."""
        if self._handler is not None:
            return self._handler

        handler: CallNext = _end_of_chain
        for mw in reversed(self._middleware):
            if not self._enabled.get(mw.name, True):
                continue
            handler = _wrap(mw, handler)
        self._handler = handler
        return handler

    async def run(self, context: RequestContext) -> Outcome:
        """Run the request through the whole chain."""
        try:
            return await self.compose()(context)
        except Exception:
            logger.exception("pipeline_unhandled_error", path=context.path, method=context.method)
            raise


def _wrap(mw: Middleware, call_next: CallNext) -> CallNext:
    async def handler(context: RequestContext) -> Outcome:
        return await mw.process(context, call_next)

    return handler
