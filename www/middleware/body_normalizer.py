"""Form body clean-up: trim string fields and turn blank ones into None."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any

from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext


def is_multipart(body: Any) -> bool:
    """Multipart bodies are parsed as ``{"fields": {...}, "files": {...}}``."""
    return isinstance(body, Mapping) and "fields" in body and "files" in body


def normalize_fields(fields: MutableMapping[str, Any]) -> None:
    """Strip every str value in place; empty results become None."""
    for key, value in fields.items():
        if isinstance(value, str):
            value = value.strip()
            fields[key] = value if value != "" else None


def normalize_body(body: Any) -> Any:
    """Normalize a parsed body in place and return it."""
    if body is None:
        return body
    target = body["fields"] if is_multipart(body) else body
    if isinstance(target, MutableMapping):
        normalize_fields(target)
    return body


class BodyNormalizer(Middleware):
    """Clean up posted form data before route handlers see it."""

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        if context.body is not None:
            normalize_body(context.body)
        return await call_next(context)
