"""
FastAPI middleware for request logging and lightweight metrics.

Every request gets a request id (taken from X-Request-ID when the client
sends one) that is attached to all log lines written while it is handled
and echoed back on the response. Outcomes are counted in memory and
exposed by the /metrics endpoints, with the statuses this API uses to
reject work (400 invalid input, 404 unknown patient, 409 duplicate
document) counted separately.

Middleware Stack Order (in main.py):
    1. LoggingMiddleware (outermost - captures everything)
    2. CORS Middleware
    3. Application routes
"""

import logging
import time
import uuid
from collections import Counter, deque
from typing import Any, Callable, Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.logging_config import set_request_id, clear_request_id

logger = logging.getLogger(__name__)


# =============================================================================
# IN-MEMORY METRICS COLLECTOR
# =============================================================================

# (summary key, help text) for each exported counter
_COUNTERS = (
    ("http_requests_total", "Total HTTP requests"),
    ("http_requests_2xx_total", "Requests answered with a 2xx status"),
    ("http_requests_4xx_total", "Requests answered with a 4xx status"),
    ("http_requests_5xx_total", "Requests answered with a 5xx status"),
    ("http_requests_invalid_total", "Requests rejected with 400 Bad Request"),
    ("http_requests_not_found_total", "Requests rejected with 404 Not Found"),
    ("http_requests_conflict_total", "Requests rejected with 409 Conflict"),
)

_QUANTILES = (50, 95, 99)


class MetricsCollector:
    """
    Request counters and a bounded latency window.

    Counters grow monotonically; latency percentiles are computed over the
    most recent `max_history` requests only.
    """

    def __init__(self, max_history: int = 1000):
        self._durations: Deque[float] = deque(maxlen=max_history)
        self._by_method: Counter = Counter()
        self._by_status: Counter = Counter()

    def record(self, method: str, status_code: int, duration_ms: float) -> None:
        """Record one completed request."""
        self._durations.append(duration_ms)
        self._by_method[method] += 1
        self._by_status[status_code] += 1

    def _status_class(self, hundreds: int) -> int:
        return sum(n for code, n in self._by_status.items() if code // 100 == hundreds)

    def latency_percentile(self, p: float) -> float:
        """Latency in milliseconds at percentile `p` (0 when empty)."""
        if not self._durations:
            return 0.0
        durations = sorted(self._durations)
        idx = min(int(len(durations) * p / 100), len(durations) - 1)
        return round(durations[idx], 2)

    def get_summary(self) -> Dict[str, Any]:
        """Metrics summary for the /metrics/json endpoint."""
        summary: Dict[str, Any] = {
            "http_requests_total": sum(self._by_status.values()),
            "http_requests_2xx_total": self._status_class(2),
            "http_requests_4xx_total": self._status_class(4),
            "http_requests_5xx_total": self._status_class(5),
            "http_requests_invalid_total": self._by_status[400],
            "http_requests_not_found_total": self._by_status[404],
            "http_requests_conflict_total": self._by_status[409],
            "http_requests_by_method": dict(self._by_method),
        }
        for q in _QUANTILES:
            summary[f"http_request_duration_ms_p{q}"] = self.latency_percentile(q)
        return summary

    def get_prometheus_format(self) -> str:
        """Export metrics in Prometheus text exposition format."""
        summary = self.get_summary()
        lines = []
        for name, help_text in _COUNTERS:
            lines += [
                f"# HELP {name} {help_text}",
                f"# TYPE {name} counter",
                f"{name} {summary[name]}",
                "",
            ]

        lines += [
            "# HELP http_requests_by_method HTTP requests by method",
            "# TYPE http_requests_by_method counter",
        ]
        for method, count in sorted(summary["http_requests_by_method"].items()):
            lines.append(f'http_requests_by_method{{method="{method}"}} {count}')

        lines += [
            "",
            "# HELP http_request_duration_ms Request duration in milliseconds",
            "# TYPE http_request_duration_ms gauge",
        ]
        for q in _QUANTILES:
            value = summary[f"http_request_duration_ms_p{q}"]
            lines.append(f'http_request_duration_ms{{quantile="{q / 100}"}} {value}')

        return "\n".join(lines) + "\n"


metrics_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance."""
    return metrics_collector


# =============================================================================
# LOGGING MIDDLEWARE
# =============================================================================

class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each API request and records its outcome in the metrics collector."""

    # Probe and docs endpoints are counted but not logged
    QUIET_PATHS = {"/health", "/ready", "/metrics", "/metrics/json", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        set_request_id(request_id)

        method = request.method
        path = request.url.path
        quiet = path in self.QUIET_PATHS
        start_time = time.perf_counter()

        if not quiet:
            logger.info(
                "Request started",
                extra={
                    "method": method,
                    "path": path,
                    "query": str(request.query_params) if request.query_params else None,
                }
            )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed with exception", extra={"method": method, "path": path})
            clear_request_id()
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000

        metrics_collector.record(method, response.status_code, duration_ms)

        if not quiet:
            logger.log(
                logging.WARNING if response.status_code >= 400 else logging.INFO,
                "Request completed",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                }
            )
        clear_request_id()

        response.headers["X-Request-ID"] = request_id
        return response
