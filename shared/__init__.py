"""
Shared utilities for the Console BFF Access Layer.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request/tenant correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI scaffold (health, metrics, error handlers)

Do not import from service_* packages into shared/.
"""
