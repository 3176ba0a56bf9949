"""
Configurator Service package for the Tier Configurator.

This package lets an operator define a catalog of configuration items
across three fixed product tiers and lets an end user pick per-tier values
subject to dependency rules. It provides:

- app.main: API surface for catalogs, configurations, export and health.
- app.catalog: Catalog model, relaxed-JSON parser, document source.
- app.rules: Dependency expressions and their evaluator.
- app.selection: Per-tier selection store.
- app.validation: Structural errors and lint warnings.
- app.codec: Configuration tokens for sharable links.
- app.export: Active-tier export payloads.
- app.session: One catalog + one store, restored per request.

Guidelines:
- The service is stateless per request; the token carries all user state.
- Keep evaluation pure and total; it never raises for a valid catalog.
- A catalog with structural errors is never partially served.
"""
