from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders
from starlette.routing import Match

from portfolio_backend.observability.metrics import UNMATCHED_ROUTE, get_metrics


def resolve_route_label(scope: dict[str, Any]) -> str:
    """Return the path template of the registered route that handled `scope`.

    Only the application's route table is consulted, so paths that match no
    route share one label instead of adding a series per raw path.
    """

    app = scope.get("app")
    for route in getattr(app, "routes", ()):
        match, _ = route.matches(scope)
        # PARTIAL is a path match with the wrong method (405).
        if match in (Match.FULL, Match.PARTIAL):
            path = getattr(route, "path", None)
            if path:
                return path
    return UNMATCHED_ROUTE


class RequestContextMiddleware:
    """Adds request_id context, access logs, and HTTP request metrics."""

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        path = scope.get("path")
        method = scope.get("method", "GET")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        metrics = get_metrics()
        metrics.on_request_start()
        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_s = perf_counter() - start
            route = resolve_route_label(scope)

            # Update metrics first so they update even if logging misbehaves.
            metrics.on_request_finish(method=method, route=route, status=status_code, elapsed_s=elapsed_s)

            structlog.get_logger("access").info(
                "http_request",
                route=route,
                status_code=status_code,
                elapsed_ms=round(elapsed_s * 1000.0, 2),
            )

            structlog.contextvars.clear_contextvars()
