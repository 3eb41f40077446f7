"""
Signing key material and its cache representation.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk
from jose.backends.base import Key
from jose.exceptions import JWKError

PUBLIC_EXPONENT = 65537

# What jose and the blob lookups raise on malformed cache contents
UNDECODABLE = (JWKError, KeyError, TypeError, AttributeError, ValueError)


@dataclass(frozen=True)
class KeyAlgorithm:
    """Asymmetric algorithm descriptor: kind, size and digest."""

    kind: str = "RSA"
    size: int = 2048
    digest: str = "SHA256"

    @property
    def tag(self) -> str:
        """JOSE algorithm name, e.g. RS256."""
        return f"RS{self.digest[3:]}"

    @classmethod
    def from_tag(cls, tag: str, size: int = 2048) -> "KeyAlgorithm":
        if not isinstance(tag, str) or not tag.startswith("RS") or tag[2:] not in ("256", "384", "512"):
            raise ValueError(f"Unsupported signing algorithm: {tag}")
        return cls(kind="RSA", size=size, digest=f"SHA{tag[2:]}")


def new_key_id(prefix: str, created_at: datetime) -> str:
    """Versioned key id: prefix, UTC creation time and a random suffix."""
    return f"{prefix}-{created_at:%Y%m%dT%H%M%SZ}-{secrets.token_hex(4)}"


@dataclass(frozen=True)
class SigningKeyMaterial:
    """One signing key pair as held by the key manager."""

    kid: str
    algorithm: KeyAlgorithm
    private_jwk: Dict[str, Any] = field(repr=False)
    public_jwk: Dict[str, Any]
    created_at: float
    # Decoded once per material; every mint reuses it
    key: Optional[Key] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.key is None:
            object.__setattr__(self, "key", jwk.construct(self.private_jwk, self.algorithm.tag))

    @classmethod
    def generate(cls, algorithm: KeyAlgorithm, kid_prefix: str) -> "SigningKeyMaterial":
        """Generate a fresh key pair. CPU bound; run it off the event loop."""
        private_key = rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=algorithm.size,
        )
        pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        signing_key = jwk.construct(pem, algorithm.tag)
        now = datetime.now(timezone.utc)

        return cls(
            kid=new_key_id(kid_prefix, now),
            algorithm=algorithm,
            private_jwk=signing_key.to_dict(),
            public_jwk=signing_key.public_key().to_dict(),
            created_at=now.timestamp(),
            key=signing_key,
        )

    @property
    def signing_key(self) -> Key:
        """Usable private key handle."""
        return self.key

    def to_cache_entries(self) -> Dict[str, Dict[str, Any]]:
        """Serialize both halves into cache blobs keyed by half."""
        return {
            "private": self._entry(self.private_jwk),
            "public": self._entry(self.public_jwk),
        }

    def _entry(self, key_jwk: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "kid": self.kid,
            "alg": self.algorithm.tag,
            "size": self.algorithm.size,
            "jwk": key_jwk,
            "created_at": self.created_at,
        }

    @classmethod
    def from_cache_entries(
        cls,
        private_entry: Dict[str, Any],
        public_entry: Dict[str, Any],
    ) -> "SigningKeyMaterial":
        """Rebuild material from the two cached halves.

        Raises ``ValueError`` when the blobs cannot be decoded into a key.
        """
        if not isinstance(private_entry, dict) or not isinstance(public_entry, dict):
            raise ValueError("Cached signing key entries are not objects")

        # Deserialization is the only validation performed on cached keys
        try:
            return cls(
                kid=private_entry["kid"],
                algorithm=KeyAlgorithm.from_tag(private_entry["alg"], private_entry.get("size", 2048)),
                private_jwk=private_entry["jwk"],
                public_jwk=public_entry["jwk"],
                created_at=private_entry.get("created_at", 0.0),
            )
        except UNDECODABLE as e:
            raise ValueError(f"Cached signing key could not be decoded: {e}") from e


def public_descriptor(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Re-import a cached public half and export it as a JWKS descriptor.

    Raises ``ValueError`` when the entry cannot be decoded into a public key.
    """
    if not isinstance(entry, dict):
        raise ValueError("Cached public key entry is not an object")
    try:
        exported = jwk.construct(entry["jwk"], entry["alg"]).to_dict()
    except UNDECODABLE as e:
        raise ValueError(f"Cached public key could not be decoded: {e}") from e
    return {
        "alg": entry["alg"],
        "kid": entry["kid"],
        "use": "sig",
        "kty": exported["kty"],
        "n": exported["n"],
        "e": exported["e"],
    }


def entry_kid(entry: Optional[Dict[str, Any]]) -> Optional[str]:
    return entry.get("kid") if isinstance(entry, dict) else None
