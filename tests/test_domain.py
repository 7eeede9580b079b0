"""Domain extraction tests."""

from __future__ import annotations

import pytest

from www.middleware.domain import DomainExtractor, bare_domain
from www.middleware.pipeline import RequestContext


@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("www.example.com", "example.com"),
        ("example.com", "example.com"),
        ("www.example.com:3000", "example.com:3000"),
        ("shop.www.example.com", "shop.www.example.com"),
        ("", ""),
    ],
)
def test_bare_domain(host, expected):
    assert bare_domain(host) == expected


@pytest.mark.asyncio
async def test_domain_stored_in_state_before_downstream():
    seen = {}

    async def call_next(context):
        seen["domain"] = context.state.get("domain")
        return None

    context = RequestContext(host="www.example.com")
    await DomainExtractor().process(context, call_next)

    assert seen["domain"] == "example.com"
    assert context.state["domain"] == "example.com"
