"""Request latency logging middleware for performance monitoring."""

import logging
import re
import time
from collections import defaultdict
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

# Thresholds for log levels (in milliseconds)
SLOW_REQUEST_THRESHOLD_MS = 500
VERY_SLOW_REQUEST_THRESHOLD_MS = 2000

HEALTH_PATHS = ("/health", "/health/ready")

# Order ids sit between /orders/ and the next segment
_ORDER_ID_PATTERN = re.compile(r"(/orders/)[^/]+")


def normalize_path(path: str) -> str:
    """Collapse per-order paths so stats group by endpoint."""
    return _ORDER_ID_PATTERN.sub(r"\1{id}", path)


class LatencyStats:
    """In-memory latency samples reported by the readiness endpoint."""

    def __init__(self, max_samples: int = 1000) -> None:
        self._samples: list[tuple[str, float]] = []
        self._max_samples = max_samples

    def record(self, path: str, latency_ms: float) -> None:
        """Record a latency sample."""
        self._samples.append((normalize_path(path), latency_ms))
        if len(self._samples) > self._max_samples:
            self._samples = self._samples[-self._max_samples:]

    def get_stats(self) -> dict:
        """Get aggregated stats."""
        if not self._samples:
            return {"total_requests": 0, "avg_latency_ms": 0, "p95_latency_ms": 0}

        latencies = sorted(sample[1] for sample in self._samples)
        total = len(latencies)
        return {
            "total_requests": total,
            "avg_latency_ms": round(sum(latencies) / total, 2),
            "p95_latency_ms": round(latencies[min(int(total * 0.95), total - 1)], 2),
        }

    def get_stats_by_path(self) -> dict:
        """Get request counts and average latency grouped by endpoint."""
        by_path: dict[str, list[float]] = defaultdict(list)
        for path, latency in self._samples:
            by_path[path].append(latency)

        return {
            path: {"count": len(latencies), "avg_ms": round(sum(latencies) / len(latencies), 2)}
            for path, latencies in by_path.items()
        }


_latency_stats: LatencyStats | None = None


def get_latency_stats() -> LatencyStats:
    """Get or create the global latency stats instance."""
    global _latency_stats
    if _latency_stats is None:
        _latency_stats = LatencyStats()
    return _latency_stats


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log request latency and record it for monitoring.

    Health checks are only logged when slow. Other requests log at a level
    chosen by latency and status code.

    Args:
        request: The incoming request.
        call_next: The next middleware/handler in the chain.

    Returns:
        Response: The response from the handler.
    """
    start_time = time.perf_counter()
    method = request.method
    path = request.url.path
    is_health_check = path in HEALTH_PATHS

    response = None
    error_occurred = False

    try:
        response = await call_next(request)
        return response
    except Exception:
        error_occurred = True
        raise
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code if response else 500

        if not is_health_check:
            get_latency_stats().record(path, latency_ms)

        if is_health_check:
            if latency_ms > 100:
                logger.debug("%s %s - %d - %.2fms", method, path, status_code, latency_ms)
        elif error_occurred or status_code >= 500:
            logger.error("%s %s - %d - %.2fms", method, path, status_code, latency_ms)
        elif latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
            logger.error("VERY SLOW REQUEST: %s %s - %d - %.2fms", method, path, status_code, latency_ms)
        elif latency_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.warning("SLOW REQUEST: %s %s - %d - %.2fms", method, path, status_code, latency_ms)
        elif status_code >= 400:
            logger.warning("%s %s - %d - %.2fms", method, path, status_code, latency_ms)
        else:
            logger.info("%s %s - %d - %.2fms", method, path, status_code, latency_ms)
