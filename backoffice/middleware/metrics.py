# backoffice/middleware/metrics.py
import time
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)


def new_metrics() -> dict:
    return {
        "requests": 0,
        "errors": 0,
        "total_response_ms": 0.0,
        "pricing_calls": 0,
        "slow_pricing_calls": 0,
    }


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Collects in-process metrics:
      - total requests and 5xx responses
      - total response time (ms)
      - pricing calls / slow pricing calls (incremented by the product price route)
    NOTE: app.state is not touched in __init__, it may not exist while the middleware stack builds.
    """

    def __init__(self, app, dispatch: Callable = None):
        super().__init__(app, dispatch=dispatch)

    async def dispatch(self, request: Request, call_next):
        metrics = getattr(request.app.state, "metrics", None)
        if metrics is None:
            # first request, or startup wasn't run
            metrics = request.app.state.metrics = new_metrics()

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        # single-process counters
        metrics["requests"] += 1
        metrics["total_response_ms"] += elapsed_ms
        if response.status_code >= 500:
            metrics["errors"] += 1

        logger.debug(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(elapsed_ms, 2),
        )
        return response
