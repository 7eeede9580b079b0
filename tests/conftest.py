"""Shared test fixtures."""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient
from starlette.responses import RedirectResponse

from www.config.loader import WwwSettings
from www.errors import HTTPError, NotFound
from www.main import create_app
from www.middleware.router import RouteTable
from www.store.access import CappedAccessSink


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch):
    """Start every test from a clean WWW_* environment."""
    for key in list(os.environ):
        if key.startswith("WWW_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("WWW_LOG_JSON", "false")
    monkeypatch.setenv("WWW_LOG_LEVEL", "debug")

    # Reset cached settings
    import www.config.loader as loader
    loader._settings = None
    yield
    loader._settings = None


@pytest.fixture
def static_dir(tmp_path):
    public = tmp_path / "public"
    (public / "css").mkdir(parents=True)
    (public / "robots.txt").write_text("User-agent: *\n")
    (public / "css" / "site.css").write_text("body { margin: 0; }\n")
    (public / ".env").write_text("SECRET=1\n")
    return public


@pytest.fixture
def settings(static_dir):
    return WwwSettings(env="development", static_dir=str(static_dir), access_log_sink="memory")


@pytest.fixture
def production_settings(static_dir):
    return WwwSettings(env="production", static_dir=str(static_dir), access_log_sink="memory")


@pytest.fixture
def routes():
    """A small site exercising every kind of handler outcome."""
    table = RouteTable()

    @table.get("/hello")
    async def hello(context):
        context.response_body = "hello"

    @table.get("/page")
    async def page(context):
        await context.render("index", {"title": "Page"})

    @table.get("/boom")
    async def boom(context):
        raise RuntimeError("kaboom")

    @table.get("/teapot")
    async def teapot(context):
        return HTTPError(418, "short and stout")

    @table.get("/members/{member_id:int}")
    async def member(context):
        if context.path_params["member_id"] != 1:
            return HTTPError(404, "No such member")
        context.response_body = {"id": context.path_params["member_id"]}

    @table.get("/gone")
    async def gone(context):
        raise NotFound()

    @table.get("/domain")
    async def domain(context):
        context.response_body = context.state["domain"]

    @table.post("/echo")
    async def echo(context):
        context.response_body = context.body

    @table.post("/upload")
    async def upload(context):
        context.response_body = {
            "fields": context.body["fields"],
            "files": sorted(context.body["files"]),
        }

    @table.post("/save")
    async def save(context):
        context.flash.set("Saved")
        return RedirectResponse("/notice", status_code=303)

    @table.get("/notice")
    async def notice(context):
        context.response_body = f"flash={context.flash.value}"

    return table


@pytest.fixture
def sink():
    return CappedAccessSink(max_entries=100)


@pytest.fixture
def app(settings, routes, sink):
    return create_app(settings, routes=routes, sink=sink)


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def production_client(production_settings, routes, sink):
    app = create_app(production_settings, routes=routes, sink=sink)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
