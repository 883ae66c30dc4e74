"""Prometheus metrics for lifecycle transitions, balance movements and transaction failures"""

from prometheus_client import Counter, Histogram

# Lifecycle metrics
lifecycle_counter = Counter(
    "loan_ledger_lifecycle_total",
    "Lifecycle records created or transitioned",
    ["entity", "action"],  # e.g. contract/active, judgment/approved
)

# Balance metrics
balance_movement_counter = Counter(
    "loan_ledger_balance_movements_total",
    "Balance-affecting records written",
    ["kind"],  # entry | repayment | activation
)

balance_amount_counter = Counter(
    "loan_ledger_balance_amount_total",
    "Sum of amounts moved through the ledger",
    ["kind"],
)

repayment_rejected_counter = Counter(
    "loan_ledger_repayment_rejected_total",
    "Repayments refused",
    ["reason"],  # insufficient_balance | no_balance | not_contracted
)

# Store health
transaction_failure_counter = Counter(
    "loan_ledger_transaction_failures_total",
    "Ledger transactions rolled back",
    ["error"],
)

request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_balance_movement(kind: str, amount: int) -> None:
    """Count a balance change and the amount it moved"""
    balance_movement_counter.labels(kind=kind).inc()
    balance_amount_counter.labels(kind=kind).inc(amount)


def record_lifecycle(entity: str, action: str) -> None:
    lifecycle_counter.labels(entity=entity, action=action).inc()
