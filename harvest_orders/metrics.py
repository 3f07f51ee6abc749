"""
Prometheus metrics: order transitions submitted/rejected, cancellations, order service errors.
"""
from prometheus_client import Counter, generate_latest

order_transitions_submitted_total = Counter(
    "order_transitions_submitted_total",
    "Total status updates forwarded to the order service",
    ["to_state"],
)
order_transitions_rejected_total = Counter(
    "order_transitions_rejected_total",
    "Total status updates rejected locally by the lifecycle table",
    ["current_state", "requested_state"],
)
order_cancellations_total = Counter(
    "order_cancellations_total",
    "Total cancellations forwarded to the order service",
    ["actor"],
)
order_api_errors_total = Counter(
    "order_api_errors_total",
    "Total failed calls to the order service",
    ["operation"],
)
duplicate_submissions_total = Counter(
    "duplicate_submissions_total",
    "Total mutating requests dropped because their Idempotency-Key was already used",
)


def get_metrics_content_type():
    return "text/plain; charset=utf-8; version=0.0.4"


def get_metrics_bytes():
    return generate_latest()
