"""
Signing key package.

Owns the lifecycle of the asymmetric key pair used to sign identity tokens:

- cache: Redis and in-memory key cache backends with TTL expiry.
- material: Key pair generation and its JWK cache representation.
- manager: Acquisition with single-flight generation on a cache miss.
- publisher: JWKS discovery document for the cached public half.

Key points:
- Both halves of a pair are written together with one TTL.
- Key ids are versioned per generation so verifiers can tell epochs apart.
"""

from .cache import KeyCache, MemoryKeyCache, RedisKeyCache, create_key_cache
from .manager import KeyState, SigningKeyManager
from .material import KeyAlgorithm, SigningKeyMaterial
from .publisher import KeyPublisher

__all__ = [
    "KeyCache",
    "MemoryKeyCache",
    "RedisKeyCache",
    "create_key_cache",
    "KeyState",
    "SigningKeyManager",
    "KeyAlgorithm",
    "SigningKeyMaterial",
    "KeyPublisher",
]
