"""Observability helpers.

structlog-based logging, request IDs bound through contextvars, and a
Prometheus metrics registry scraped from `/metrics`.
"""
