"""
Prometheus metrics for the football data API.

Metrics exposed:
- Sync run counters by entity family and outcome
- Synced record counters by entity type and outcome
- Sync duration histogram
- Football data provider request counters
- Scheduler status gauge
"""
from prometheus_client import Counter, Gauge, Histogram

# Sync Metrics
sync_runs_total = Counter(
    "football_sync_runs_total",
    "Total sync runs",
    ["family", "status"]
)

sync_records_total = Counter(
    "football_sync_records_total",
    "Records processed by the reconciliation engine",
    ["entity", "outcome"]
)

sync_duration_seconds = Histogram(
    "football_sync_duration_seconds",
    "Duration of one sync run in seconds",
    ["family"]
)

# External API Metrics
football_api_requests_success_total = Counter(
    "football_api_requests_success_total",
    "Total successful football data provider requests",
    ["action"]
)

football_api_requests_failure_total = Counter(
    "football_api_requests_failure_total",
    "Total failed football data provider requests",
    ["action", "error_type"]
)

# Scheduler Metrics
scheduler_running = Gauge(
    "scheduler_running",
    "Whether the sync scheduler is running (1=running, 0=stopped)"
)


def record_sync_outcome(entity: str, created: int, updated: int, failed: int = 0, skipped: int = 0) -> None:
    """Add one reconciled batch to the record counters."""
    for outcome, count in (
        ("created", created),
        ("updated", updated),
        ("failed", failed),
        ("skipped", skipped),
    ):
        if count:
            sync_records_total.labels(entity=entity, outcome=outcome).inc(count)
