"""
Identity Service package for the Identity Bridge.

This package exposes the FastAPI application that turns a third-party
OAuth2 login into a self-issued, RS256-signed identity token, and
publishes the key needed to verify it:

- app.main: Application entrypoint that wires routes and lifecycle.
- app.issuance: The callback flow from authorization code to token.
- app.keys: Signing key cache, lifecycle manager and JWKS publisher.
- app.tokens: Identity claims and token minting.
- app.provider: HTTP client for the upstream identity provider.

Design notes:
- Keep the package import side-effects minimal; module import must not
  perform network calls. All IO happens in route handlers or the
  lifespan hooks.
- Use the shared/ utilities for logging, metrics, and errors.
- The key cache is the only state shared between requests; everything
  else is rebuilt per request.
"""
