"""Jinja2 templating: attaches ``context.render(view, locals)``."""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Any

import structlog
from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound, select_autoescape

from www.middleware.pipeline import CallNext, Middleware, Outcome, RequestContext

logger = structlog.get_logger()


class TemplateBinder(Middleware):
    """Bind a render capability to every request context.

    Views are looked up by name, trying each extension in order, so
    ``render("404-not-found")`` finds ``404-not-found.html``. Partials are
    plain Jinja2 includes from the same directory. The template sees
    ``context.state`` merged with the view's own locals.
    """

    def __init__(self, templates_dir: str | Path, extensions: list[str] | None = None) -> None:
        self._extensions = list(extensions or ["html", "jinja"])
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(self._extensions),
            enable_async=True,
        )
        self._resolved: dict[str, str] = {}

    def get_template(self, view: str) -> Template:
        """Resolve a view name to a template. Raises TemplateNotFound."""
        if view in self._resolved:
            return self._env.get_template(self._resolved[view])
        candidates = [f"{view}.{ext}" for ext in self._extensions]
        for name in candidates:
            try:
                template = self._env.get_template(name)
            except TemplateNotFound:
                continue
            self._resolved[view] = name
            return template
        raise TemplateNotFound(view, message=f"no template for view {view!r} (tried {candidates})")

    async def render(self, context: RequestContext, view: str, locals_: dict[str, Any] | None = None) -> None:
        """Render a view into the context's response body."""
        template = self.get_template(view)
        body = await template.render_async({**context.state, **(locals_ or {})})
        context.media_type = "text/html"
        context.response = None
        context.response_body = body
        logger.debug("template_rendered", view=view, template=template.name)

    async def process(self, context: RequestContext, call_next: CallNext) -> Outcome:
        context.render = partial(self.render, context)
        return await call_next(context)
