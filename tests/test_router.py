"""Route table and dispatcher tests."""

from __future__ import annotations

import pytest
from starlette.responses import RedirectResponse

from www.errors import HTTPError
from www.middleware.pipeline import RequestContext
from www.middleware.router import RouteDispatcher, RouteTable


async def _show(context):
    context.response_body = f"member {context.path_params['member_id']}"


def _table() -> RouteTable:
    table = RouteTable()
    table.add("GET", "/members/{member_id:int}", _show)
    table.add(["POST", "put"], "/members", _show, name="save_member")
    return table


class TestRouteTable:
    def test_match_converts_params(self):
        route, params = _table().match("GET", "/members/42")
        assert params == {"member_id": 42}
        assert route.name == "_show"

    def test_no_match_on_path(self):
        assert _table().match("GET", "/members/abc") is None
        assert _table().match("GET", "/members/42/edit") is None

    def test_no_match_on_method(self):
        assert _table().match("DELETE", "/members/42") is None

    def test_methods_case_insensitive(self):
        route, _ = _table().match("put", "/members")
        assert route.name == "save_member"

    def test_head_falls_back_to_get(self):
        assert _table().match("HEAD", "/members/1") is not None

    def test_first_match_wins(self):
        table = RouteTable()

        @table.get("/a", name="first")
        async def first(context):
            pass

        @table.get("/a", name="second")
        async def second(context):
            pass

        route, _ = table.match("GET", "/a")
        assert route.name == "first"
        assert len(table) == 2


class TestRouteDispatcher:
    @pytest.mark.asyncio
    async def test_dispatches_and_sets_params(self):
        context = RequestContext(method="GET", path="/members/7")

        async def call_next(ctx):
            raise AssertionError("matched routes must not fall through")

        assert await RouteDispatcher(_table()).process(context, call_next) is None
        assert context.path_params == {"member_id": 7}
        assert context.response_body == "member 7"
        assert context.status == 200

    @pytest.mark.asyncio
    async def test_unmatched_continues_down_the_chain(self):
        called = []

        async def call_next(ctx):
            called.append(ctx.path)
            return HTTPError(404)

        outcome = await RouteDispatcher(_table()).process(RequestContext(path="/nope"), call_next)
        assert called == ["/nope"]
        assert outcome.status_code == 404

    @pytest.mark.asyncio
    async def test_handler_error_value_returned(self):
        table = RouteTable()

        @table.get("/private")
        async def private(context):
            return HTTPError(403, "members only")

        outcome = await RouteDispatcher(table).process(RequestContext(path="/private"), None)
        assert outcome.status_code == 403
        assert outcome.message == "members only"

    @pytest.mark.asyncio
    async def test_handler_response_kept(self):
        table = RouteTable()

        @table.post("/login")
        async def login(context):
            return RedirectResponse("/", status_code=303)

        context = RequestContext(method="POST", path="/login")
        await RouteDispatcher(table).process(context, None)
        assert context.response.status_code == 303
        assert context.final_status == 303
