"""
Prometheus Metrics Module

Access-control metrics exposed at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Info

APP_INFO = Info("term_access_app", "Term access application information")


def set_app_info(version: str, environment: str) -> None:
    """Set application info labels."""
    APP_INFO.info({"version": version, "environment": environment})


# =============================================================================
# Decision Metrics
# =============================================================================

ACCESS_CHECKS_TOTAL = Counter(
    "term_access_checks_total",
    "Single-item access checks",
    ["operation", "result"],
)

ACCESS_DENIALS_TOTAL = Counter(
    "term_access_denials_total",
    "Denied access checks by reason",
    ["reason"],
)

# =============================================================================
# Grant Index Metrics
# =============================================================================

GRANT_RECORDS_WRITTEN_TOTAL = Counter(
    "term_access_grant_records_written_total",
    "Grant records written to the grant table",
)

GRANT_REBUILD_DURATION_SECONDS = Histogram(
    "term_access_grant_rebuild_duration_seconds",
    "Duration of full grant rebuild passes",
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0),
)

# =============================================================================
# Cache Metrics
# =============================================================================

CACHE_INVALIDATIONS_TOTAL = Counter(
    "term_access_cache_invalidations_total",
    "Cache tags invalidated",
    ["tag_type"],
)


def record_access_check(operation: str, result: str) -> None:
    ACCESS_CHECKS_TOTAL.labels(operation=operation, result=result).inc()


def record_denial(reason: str) -> None:
    ACCESS_DENIALS_TOTAL.labels(reason=reason).inc()


def record_invalidation(tag: str) -> None:
    # "node:42" and "node_list" count as "node" and "node_list"
    CACHE_INVALIDATIONS_TOTAL.labels(tag_type=tag.split(":", 1)[0]).inc()
