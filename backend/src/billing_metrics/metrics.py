"""Operational metrics for Prometheus monitoring."""
from prometheus_client import Counter, Gauge, Histogram

# Snapshot computation metrics
snapshots_computed_total = Counter(
    "billing_metrics_snapshots_computed_total",
    "Total metrics snapshots computed and persisted",
)

snapshot_failures_total = Counter(
    "billing_metrics_snapshot_failures_total",
    "Total metrics snapshot computations that failed",
)

snapshot_duration_seconds = Histogram(
    "billing_metrics_snapshot_duration_seconds",
    "Time spent computing and persisting one snapshot",
)

# Recalculation trigger metrics
billing_events_total = Counter(
    "billing_metrics_events_total",
    "Total billing events processed",
    labelnames=["event_type", "status"],  # status: success, failed
)

# Backfill metrics
backfill_periods_total = Counter(
    "billing_metrics_backfill_periods_total",
    "Total periods processed by historical backfill",
    labelnames=["status"],  # success, failed
)

# Revenue metrics of the current period
mrr_amount = Gauge(
    "billing_metrics_mrr",
    "Monthly Recurring Revenue of the current period",
    labelnames=["currency"],
)

arr_amount = Gauge(
    "billing_metrics_arr",
    "Annual Recurring Revenue of the current period",
    labelnames=["currency"],
)

churn_rate_percent = Gauge(
    "billing_metrics_churn_rate_percent",
    "Churn rate of the current period",
)

# Health metrics
health_issues_gauge = Gauge(
    "billing_metrics_health_issues",
    "Number of issues found by the last health report",
)

overdue_invoices_marked_total = Counter(
    "billing_metrics_overdue_invoices_marked_total",
    "Total pending invoices moved to overdue by the maintenance sweep",
)
