"""Default route table for the public site."""

from __future__ import annotations

from www.middleware.pipeline import RequestContext
from www.middleware.router import RouteTable


async def home(context: RequestContext) -> None:
    await context.render("index", {"title": "Home"})


def build_routes() -> RouteTable:
    routes = RouteTable()
    routes.add("GET", "/", home, name="home")
    return routes
