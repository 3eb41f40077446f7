"""
Identity provider package.

HTTP client for the upstream OAuth2 provider (Discord by default):

- client: authorize URL construction, code exchange, profile and
  membership fetches.
- models: Pydantic models of the provider payloads.

Calls are made strictly in sequence by the issuance flow and are never
retried; a rejected exchange or profile call fails the request.
"""

from .client import ProviderClient
from .models import Membership, ProviderProfile, ProviderToken

__all__ = ["ProviderClient", "Membership", "ProviderProfile", "ProviderToken"]
