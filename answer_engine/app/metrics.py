from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

from answer_engine.app.settings import settings

REQUEST_COUNT = Counter(
    "answer_engine_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "answer_engine_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
REQUEST_FAILURES = Counter(
    "answer_engine_request_failures_total",
    "Requests answered with an error object, by failure reason",
    ["path", "reason"],
)


def mark_failure(request: Request, reason: str) -> None:
    """Tag the request so the middleware counts it under ``reason``."""
    request.state.failure_reason = reason


async def metrics_middleware(request: Request, call_next):
    if not settings.metrics_enabled:
        return await call_next(request)
    path = request.url.path
    if path == "/metrics":
        return await call_next(request)
    start = time.monotonic()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        REQUEST_COUNT.labels(request.method, path, str(status)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(time.monotonic() - start)
        reason = getattr(request.state, "failure_reason", None)
        if reason is None and status >= 500:
            reason = "internal"
        if reason is not None:
            REQUEST_FAILURES.labels(path, reason).inc()


def metrics_response() -> Response:
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
