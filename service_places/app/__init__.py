"""
Places Gateway service package.

The gateway fronts a paid, metered places-search provider, enforcing:
- Per-caller admission: fixed-window rate limiting keyed by client address
- Redundancy reduction: geo-quantized response cache with TTL
- Spend accounting: bounded usage log plus monthly budget with threshold alerts

Structure:
- app.main: FastAPI app, routes, background sweeper.
- app.domain: Query validation and the request orchestrator.
- app.identity: Caller key resolution from proxy headers.
- app.ratelimit: Fixed-window limiter.
- app.caching: Quantized TTL cache.
- app.usage: Usage tracker.
- app.budget: Budget monitor and alert notifiers.
- app.adapters: HTTP client for the upstream provider.
"""
