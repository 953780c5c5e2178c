"""Prometheus metrics for monitoring reconciliation outcomes and payment status batches"""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconciliation_counter = Counter(
    "card_reconciliation_total",
    "Total reconciliation runs",
    ["status"],  # MATCHED | PARTIAL | UNMATCHED
)

ambiguous_match_counter = Counter(
    "card_reconciliation_ambiguous_total",
    "Reconciliations rejected because several candidates tied",
)

# Bank API metrics
bank_fetch_failures_counter = Counter(
    "bank_fetch_failures_total",
    "Failed bank API calls",
)

# Payment status metrics
status_transition_counter = Counter(
    "payment_status_transitions_total",
    "Payment status transitions saved",
    ["from_status", "to_status", "updated_by"],
)

batch_failure_counter = Counter(
    "payment_status_batch_failures_total",
    "Per-record failures in the daily payment status batch",
    ["to_status"],
)

batch_duration_histogram = Histogram(
    "payment_status_batch_duration_seconds",
    "Duration of a full payment status batch run",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_reconciliation(status: str) -> None:
    """Record reconciliation outcome for match-rate monitoring"""
    reconciliation_counter.labels(status=status).inc()


def record_transition(from_status: str | None, to_status: str, updated_by: str) -> None:
    status_transition_counter.labels(
        from_status=from_status or "NONE",
        to_status=to_status,
        updated_by=updated_by,
    ).inc()
