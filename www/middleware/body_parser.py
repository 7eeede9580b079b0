"""Request body parsing: urlencoded and multipart forms, JSON."""

from __future__ import annotations

import json
from typing import Any

import structlog
from starlette.datastructures import FormData, UploadFile
from starlette.requests import Request

from www.errors import HTTPError
from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext

logger = structlog.get_logger()

_PARSED_METHODS = frozenset({"POST", "PUT", "PATCH"})


def _collect(items: list[tuple[str, Any]]) -> dict[str, Any]:
    """Fold repeated keys into lists."""
    result: dict[str, Any] = {}
    for key, value in items:
        if key in result:
            existing = result[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[key] = [existing, value]
        else:
            result[key] = value
    return result


def form_to_body(form: FormData, multipart: bool) -> dict[str, Any]:
    """Flat mapping for urlencoded forms, ``{"fields", "files"}`` for multipart."""
    items = form.multi_items()
    if not multipart:
        return _collect(items)
    return {
        "fields": _collect([(k, v) for k, v in items if not isinstance(v, UploadFile)]),
        "files": _collect([(k, v) for k, v in items if isinstance(v, UploadFile)]),
    }


async def parse_body(request: Request) -> Any:
    """Parse the request body by content type. Returns None when nothing was parsed."""
    if request.method not in _PARSED_METHODS:
        return None
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

    if content_type == "application/x-www-form-urlencoded":
        return form_to_body(await request.form(), multipart=False)
    if content_type == "multipart/form-data":
        return form_to_body(await request.form(), multipart=True)
    if content_type == "application/json" or content_type.endswith("+json"):
        raw = await request.body()
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.info("invalid_json_body", error=str(exc))
            raise HTTPError(400, "Invalid JSON body", cause=exc)
    return None


class BodyParser(Middleware):
    """Parse posted bodies into ``context.body`` for the normalizer and routes."""

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        if context.request is not None and context.body is None:
            context.body = await parse_body(context.request)
        return await call_next(context)
