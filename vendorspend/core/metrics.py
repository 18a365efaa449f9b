"""
Prometheus metrics for validation, approval and external calls.
"""

from prometheus_client import Counter, Histogram

VALIDATION_RUNS = Counter(
    "vendorspend_validation_runs_total",
    "Invoice validation runs by overall status",
    ["status"],
)

VALIDATION_EXCEPTIONS = Counter(
    "vendorspend_validation_exceptions_total",
    "Validation exceptions created by severity",
    ["severity"],
)

APPROVAL_DECISIONS = Counter(
    "vendorspend_approval_decisions_total",
    "Approval decisions applied",
    ["decision"],
)

EXTERNAL_CALL_RETRIES = Counter(
    "vendorspend_external_call_retries_total",
    "Retries of transient external calls",
    ["operation"],
)

REQUEST_LATENCY = Histogram(
    "vendorspend_request_duration_seconds",
    "HTTP request latency",
    ["method", "status"],
)
