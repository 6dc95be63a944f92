"""
Application Metrics with Prometheus
=============================================================================
CONCEPT: Counters and Histograms

  COUNTER - only goes up. rate() in PromQL turns it into "per second".
      employee_operations_total{operation="create", outcome="success"}

  HISTOGRAM - distribution of observed values (latency), exposed as
  <name>_bucket{le=...}, <name>_count and <name>_sum.
      histogram_quantile(0.95, rate(http_request_duration_seconds_bucket[5m]))

The metrics are exposed in Prometheus text format at GET /metrics
(ADMIN only, see api/health.py).

LABEL CARDINALITY:
  `route` is the route TEMPLATE ("/api/v1/employees/{employee_id}"), never
  the concrete path. Using raw paths would create one time series per
  employee id and eventually exhaust Prometheus memory.
=============================================================================
"""

from prometheus_client import Counter, Histogram


# outcome: "success", "not_found", "invalid", "conflict", "error"
employee_operations_total = Counter(
    name="employee_operations_total",
    documentation="Employee service operations, partitioned by operation and outcome.",
    labelnames=["operation", "outcome"],
)

# event: "hit", "miss", "evict"
employee_cache_events_total = Counter(
    name="employee_cache_events_total",
    documentation="Employee cache lookups and evictions.",
    labelnames=["event"],
)

http_request_duration_seconds = Histogram(
    name="http_request_duration_seconds",
    documentation="HTTP request latency in seconds, partitioned by method and route template.",
    labelnames=["method", "route", "status"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)


def record_operation(operation: str, outcome: str = "success") -> None:
    employee_operations_total.labels(operation=operation, outcome=outcome).inc()


def record_cache_event(event: str) -> None:
    employee_cache_events_total.labels(event=event).inc()


def record_request(method: str, route: str, status: int, duration_ms: float) -> None:
    """Record one HTTP request. Prometheus convention is seconds, so ms are converted."""
    http_request_duration_seconds.labels(
        method=method,
        route=route,
        status=str(status),
    ).observe(duration_ms / 1000.0)
