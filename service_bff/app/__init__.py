"""
Console BFF service package.

The BFF re-exposes the upstream conversational platform's per-account REST
APIs to the admin console through one uniform layer:

- Domain resolution: per-tenant directory lookups, derived hosts, TTL cache
- Request gateway: versioned queries, bearer auth, If-Match and revisions
- Rate-limited dispatch: one outbound concurrency and spacing cap

Structure:
- app.main: FastAPI app, routes, and wiring.
- app.caching: In-memory TTL store.
- app.ratelimit: Shared outbound dispatcher.
- app.directory: Domain resolver and endpoint derivation.
- app.gateway: Request verbs, options, revision handling.
- app.resources: Per-resource services built on the gateway.
"""
