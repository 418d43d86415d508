"""Prometheus metrics for loan transitions, ledger activity and collateral custody"""

from prometheus_client import Counter, Histogram

# Lifecycle metrics
loan_transition_counter = Counter(
    "goldloan_loan_transition_total",
    "Committed loan status transitions",
    ["from_status", "to_status"],
)

rejected_command_counter = Counter(
    "goldloan_rejected_command_total",
    "Commands refused by a guard or validation",
    ["error"],  # validation_error | invalid_transition | invalid_state | ...
)

# Ledger metrics
payment_counter = Counter(
    "goldloan_payment_total",
    "Ledger entries recorded",
    ["payment_type"],
)

# Custody metrics
collateral_release_counter = Counter(
    "goldloan_collateral_released_total",
    "Gold items released back to borrowers",
)

# Overdue sweep
overdue_sweep_counter = Counter(
    "goldloan_overdue_sweep_total",
    "Loans processed by overdue recomputation",
    ["outcome"],  # unchanged | overdue | completed | failed
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)

# Lifecycle event webhook
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Lifecycle event webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed lifecycle event deliveries",
)


def record_transition(from_status: str, to_status: str) -> None:
    loan_transition_counter.labels(from_status=from_status, to_status=to_status).inc()
