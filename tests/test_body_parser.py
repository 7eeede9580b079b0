"""Request body parsing tests."""

from __future__ import annotations

import json

import pytest

from tests.helpers.http import make_request
from www.errors import HTTPError
from www.middleware.body_parser import BodyParser, parse_body
from www.middleware.pipeline import RequestContext


class TestParseBody:
    @pytest.mark.asyncio
    async def test_urlencoded_form(self):
        request = make_request(
            "POST",
            headers={"content-type": "application/x-www-form-urlencoded"},
            body=b"name=+Ann+&note=",
        )
        assert await parse_body(request) == {"name": " Ann ", "note": ""}

    @pytest.mark.asyncio
    async def test_repeated_keys_become_lists(self):
        request = make_request(
            "POST",
            headers={"content-type": "application/x-www-form-urlencoded"},
            body=b"tag=a&tag=b&tag=c",
        )
        assert await parse_body(request) == {"tag": ["a", "b", "c"]}

    @pytest.mark.asyncio
    async def test_json(self):
        request = make_request(
            "PUT",
            headers={"content-type": "application/json; charset=utf-8"},
            body=json.dumps({"name": " Ann ", "age": 3}).encode(),
        )
        assert await parse_body(request) == {"name": " Ann ", "age": 3}

    @pytest.mark.asyncio
    async def test_invalid_json_is_400(self):
        request = make_request("POST", headers={"content-type": "application/json"}, body=b"{bad")
        with pytest.raises(HTTPError) as exc_info:
            await parse_body(request)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_empty_json_body_is_none(self):
        request = make_request("POST", headers={"content-type": "application/json"}, body=b"  ")
        assert await parse_body(request) is None

    @pytest.mark.asyncio
    async def test_get_is_not_parsed(self):
        request = make_request(
            "GET",
            headers={"content-type": "application/x-www-form-urlencoded"},
            body=b"a=1",
        )
        assert await parse_body(request) is None

    @pytest.mark.asyncio
    async def test_unknown_content_type_is_not_parsed(self):
        request = make_request("POST", headers={"content-type": "text/plain"}, body=b"hello")
        assert await parse_body(request) is None


class TestBodyParserMiddleware:
    @pytest.mark.asyncio
    async def test_sets_context_body(self):
        request = make_request(
            "POST",
            headers={"content-type": "application/x-www-form-urlencoded"},
            body=b"a=1",
        )
        context = RequestContext.from_request(request)

        async def call_next(ctx):
            assert ctx.body == {"a": "1"}
            return None

        await BodyParser().process(context, call_next)
        assert context.body == {"a": "1"}

    @pytest.mark.asyncio
    async def test_without_request_is_noop(self):
        context = RequestContext()

        async def call_next(ctx):
            return None

        await BodyParser().process(context, call_next)
        assert context.body is None
