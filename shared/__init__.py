"""
Shared utilities for the security decision service.

This package aggregates common building blocks:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics for permission decisions
- errors: Canonical error types and responses

Do not import from service_* packages into shared/.
"""
