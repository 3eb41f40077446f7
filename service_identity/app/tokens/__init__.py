"""
Identity token package.

Builds and signs the identity assertion handed back by the callback:

- models: IdentityClaims and the response shapes of the HTTP surface.
- minter: RS256 signing with the key handed out by the key manager.
"""

from .minter import TokenMinter
from .models import DiscoveryDocument, IdentityClaims, TokenResponse

__all__ = ["TokenMinter", "DiscoveryDocument", "IdentityClaims", "TokenResponse"]
