"""
ASGI middleware for HTTP request metrics.

Paths are collapsed to route templates before labelling so video IDs and
asset keys don't blow up label cardinality.
"""
import re
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from tubely.utils.metrics import http_requests_total, http_request_duration_seconds, errors_total

UUID_RE = re.compile(r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', re.IGNORECASE)
NUMERIC_SEGMENT_RE = re.compile(r'/\d+(?=/|$)')

UNTRACKED_PATHS = frozenset({"/metrics"})


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests and observes their latency per method and route."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNTRACKED_PATHS:
            return await call_next(request)

        method = request.method
        path = self._normalize_path(request.url.path)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            # Unhandled errors still count as a request, as a 500
            status_code = 500
            errors_total.labels(error_type="exception").inc()
            raise
        finally:
            http_requests_total.labels(method=method, path=path, status=status_code).inc()
            http_request_duration_seconds.labels(method=method, path=path).observe(time.perf_counter() - started)

        if status_code >= 400:
            errors_total.labels(error_type=f"{status_code // 100}xx").inc()

        return response

    def _normalize_path(self, path: str) -> str:
        """Route template for a request path, e.g. /api/videos/{id}."""
        if path.startswith("/assets/"):
            return "/assets/{key}"
        path = UUID_RE.sub('{id}', path)
        return NUMERIC_SEGMENT_RE.sub('/{id}', path)
