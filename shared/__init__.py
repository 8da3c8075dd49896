"""
Shared utilities for the Weather Access layer.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and the ``{"error": ...}`` body
- retry: Retry helper for transient upstream failures
- base_service: FastAPI app scaffolding (middleware, /health, /metrics)
- test_helpers: Payload factories and provider stubs for tests

Do not import from service_* packages into shared/.
"""
