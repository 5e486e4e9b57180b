# tablekit/observability/metrics.py
# minimal prometheus instrumentation

from __future__ import annotations

import time
from typing import Callable

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_COUNT = Counter(
    "tablekit_request_count",
    "Total request count",
    labelnames=("method", "path", "status"),
)
REQUEST_LATENCY = Histogram(
    "tablekit_request_latency_seconds",
    "Request latency in seconds",
)
SAVED_VIEW_OPERATIONS = Counter(
    "tablekit_saved_view_operations",
    "Saved view list/save/delete calls by outcome",
    labelnames=("operation", "outcome"),
)
CACHE_LOOKUPS = Counter(
    "tablekit_cache_lookups",
    "Suggestion cache reads by result (hit, miss)",
    labelnames=("result",),
)
SUGGESTION_REQUESTS = Counter(
    "tablekit_view_suggestions",
    "View name suggestion requests by outcome (completed, cancelled, discarded, failed)",
    labelnames=("outcome",),
)

router = APIRouter(tags=["Metrics"])


@router.get("/metrics", include_in_schema=False)
async def prometheus_metrics() -> Response:
    """expose /metrics"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Count requests and observe latency per route template."""

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        REQUEST_LATENCY.observe(time.perf_counter() - start)
        REQUEST_COUNT.labels(request.method, path, str(response.status_code)).inc()
        return response
