"""Observability helpers.

Request IDs + structlog contextvars, JSON logging to stdout, and a Prometheus
registry scraped through /metrics.
"""
