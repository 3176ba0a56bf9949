"""
Shared utilities for the Tier Configurator.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request and catalog correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for catalog fetches
- base_service: FastAPI application scaffolding
- test_helpers: Catalog document builders for tests

Do not import from service packages into shared/.
"""
