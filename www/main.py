"""FastAPI application for the public site: one catch-all route driving the pipeline."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from starlette.middleware.sessions import SessionMiddleware
from starlette.types import Receive, Scope, Send

from www.config.loader import WwwSettings, load_settings
from www.events import ErrorEvents
from www.logging_config import bind_request, setup_logging, unbind_request
from www.middleware.access_logger import AccessLogger
from www.middleware.body_normalizer import BodyNormalizer
from www.middleware.body_parser import BodyParser
from www.middleware.domain import DomainExtractor
from www.middleware.error_handler import ErrorBoundary
from www.middleware.flash import FlashMessages
from www.middleware.not_found import NotFound
from www.middleware.pipeline import MiddlewarePipeline, RequestContext
from www.middleware.router import RouteDispatcher, RouteTable
from www.middleware.security_headers import SecurityHeaders
from www.middleware.static_files import StaticFileServer
from www.middleware.templating import TemplateBinder
from www.routes import build_routes
from www.store.access import AccessLogSink, build_sink

logger = structlog.get_logger()


class PipelineEndpoint:
    """ASGI endpoint running every request, whatever its method, through the pipeline."""

    def __init__(self, pipeline: MiddlewarePipeline) -> None:
        self.pipeline = pipeline

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive, send)
        context = RequestContext.from_request(request)
        bind_request(context.request_id, context.method, context.path)
        try:
            await self.pipeline.run(context)
        finally:
            unbind_request()
        response = context.to_response()
        await response(scope, receive, send)


def build_pipeline(
    settings: WwwSettings,
    routes: RouteTable,
    sink: AccessLogSink,
    events: ErrorEvents,
) -> MiddlewarePipeline:
    """Build the ordered middleware pipeline, outermost first.

    The error boundary sits inside the access logger and templating so
    the logged status is the final one and error pages can be rendered.
    Everything from the body parser inwards is covered by the boundary.
    """
    pipeline = MiddlewarePipeline()
    pipeline.add(StaticFileServer(settings.static_dir, settings.static_cache_seconds))  # 0: short-circuits files
    pipeline.add(AccessLogger(                                                          # 1
        sink,
        failure_policy=settings.access_log_failure_policy,
        retries=settings.access_log_retries,
    ))
    pipeline.add(TemplateBinder(settings.templates_dir, settings.template_extensions))  # 2
    pipeline.add(ErrorBoundary(events, production=settings.is_production))             # 3
    pipeline.add(BodyParser())                                                          # 4
    pipeline.add(BodyNormalizer())                                                      # 5
    pipeline.add(FlashMessages(settings.flash_key))                                     # 6
    pipeline.add(SecurityHeaders(settings.header_preset, settings.csp_override))        # 7
    pipeline.add(DomainExtractor())                                                     # 8
    pipeline.add(RouteDispatcher(routes))                                               # 9
    pipeline.add(NotFound())                                                            # 10: end of the line
    return pipeline


def create_app(
    settings: WwwSettings | None = None,
    *,
    routes: RouteTable | None = None,
    sink: AccessLogSink | None = None,
    events: ErrorEvents | None = None,
) -> FastAPI:
    """Configure the site application. Nothing here is process-global."""
    if settings is None:
        settings = load_settings()
    if routes is None:
        routes = build_routes()
    if sink is None:
        sink = build_sink(settings.access_log_sink, settings.access_log_max_entries)
    if events is None:
        events = ErrorEvents()

    pipeline = build_pipeline(settings, routes, sink, events)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(log_level=settings.log_level, json_format=settings.json_logs)
        logger.info(
            "www_started",
            env=settings.env,
            middleware=pipeline.names,
            routes=len(routes),
        )
        yield
        logger.info("www_stopped")

    app = FastAPI(
        title="www",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.routes = routes
    app.state.access_sink = sink
    app.state.error_events = events

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        https_only=settings.is_production,
    )

    # Route is built from an ASGI endpoint so that no method list applies
    app.router.add_route("/{path:path}", PipelineEndpoint(pipeline), include_in_schema=False)

    return app
