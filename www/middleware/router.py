"""Route table and the dispatcher middleware that consults it."""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog
from starlette.convertors import Convertor
from starlette.responses import Response
from starlette.routing import compile_path

from www.errors import HTTPError
from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext

logger = structlog.get_logger()

RouteHandler = Callable[[RequestContext], Awaitable[Any]]


@dataclass
class Route:
    methods: frozenset[str]
    path: str
    handler: RouteHandler
    name: str = ""
    regex: re.Pattern = field(init=False, repr=False)
    convertors: dict[str, Convertor] = field(init=False, repr=False)

    def __post_init__(self):
        self.regex, _, self.convertors = compile_path(self.path)
        if not self.name:
            self.name = getattr(self.handler, "__name__", self.path)

    def match(self, path: str) -> dict[str, Any] | None:
        """Converted path params if ``path`` matches, else None."""
        m = self.regex.match(path)
        if m is None:
            return None
        return {key: self.convertors[key].convert(value) for key, value in m.groupdict().items()}


class RouteTable:
    """Ordered routes; the first route matching method and path wins.

    Paths use Starlette syntax, e.g. ``/members/{id:int}``. HEAD requests
    fall back to GET routes.
    """

    def __init__(self) -> None:
        self._routes: list[Route] = []

    def add(self, methods: str | Iterable[str], path: str, handler: RouteHandler, name: str = "") -> Route:
        if isinstance(methods, str):
            methods = [methods]
        route = Route(frozenset(m.upper() for m in methods), path, handler, name)
        self._routes.append(route)
        return route

    def route(self, path: str, methods: Iterable[str] = ("GET",), name: str = ""):
        """Decorator form of add()."""
        def decorator(handler: RouteHandler) -> RouteHandler:
            self.add(methods, path, handler, name)
            return handler
        return decorator

    def get(self, path: str, name: str = ""):
        return self.route(path, ("GET",), name)

    def post(self, path: str, name: str = ""):
        return self.route(path, ("POST",), name)

    def match(self, method: str, path: str) -> tuple[Route, dict[str, Any]] | None:
        method = method.upper()
        for route in self._routes:
            if method in route.methods or (method == "HEAD" and "GET" in route.methods):
                params = route.match(path)
                if params is not None:
                    return route, params
        return None

    def __len__(self) -> int:
        return len(self._routes)


class RouteDispatcher(Middleware):
    """Dispatch to the matching route; unmatched requests continue down the chain.

    A handler may return None (it set the body or called render), an
    HTTPError value, or a complete Starlette Response such as a redirect.
    """

    def __init__(self, routes: RouteTable) -> None:
        self._routes = routes

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        found = self._routes.match(context.method, context.path)
        if found is None:
            return await call_next(context)

        route, params = found
        context.path_params = params
        logger.debug("route_matched", route=route.name, path=context.path)
        result = await route.handler(context)

        if isinstance(result, HTTPError):
            return result
        if isinstance(result, Response):
            context.response = result
        return None
