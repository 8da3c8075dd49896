"""
Weather Service package.

The service fronts the presentation layer's weather lookups, providing:
- Parameter validation and deterministic cache keys
- A process-wide response cache with lazy TTL expiry
- An OpenWeatherMap gateway that reshapes provider payloads

Structure:
- app.main: FastAPI app, routes, and dependency wiring.
- app.adapters: HTTP client for the weather provider.
- app.caching: Response cache and key derivation.
- app.domain: Unified models, provider schemas, validation, transforms.
- app.weather: Lookup service combining cache and gateway.
"""
