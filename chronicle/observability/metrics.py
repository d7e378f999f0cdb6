"""Prometheus metrics for the audit pipeline."""

from prometheus_client import Counter, Histogram

AUDIT_RECORDS = Counter(
    "chronicle_audit_records_total",
    "Audit records dispatched to a writer",
    labelnames=["operation", "writer", "outcome"],
)

AUDIT_SKIPPED = Counter(
    "chronicle_audit_skipped_total",
    "Audit calls that produced no record",
    labelnames=["operation", "reason"],
)

AUDIT_WRITE_LATENCY = Histogram(
    "chronicle_audit_write_latency_seconds",
    "Latency of a single writer call in seconds",
    labelnames=["writer"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

AUDIT_WRITER_FAILURES = Counter(
    "chronicle_audit_writer_failures_total",
    "Writer calls that failed inside the writer boundary",
    labelnames=["writer"],
)
