"""Observability: structured logging and Prometheus metrics.

Logging uses structlog with JSON or console rendering; metrics are
registered with prometheus_client on import.
"""
