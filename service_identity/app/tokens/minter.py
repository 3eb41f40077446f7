"""
Identity token minting.
"""

import time
from typing import Any, Callable, Dict, Optional

from jose import jwt
from jose.exceptions import JOSEError

from shared.errors import TokenSigningError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..keys.material import SigningKeyMaterial
from .models import IdentityClaims


class TokenMinter:
    """Builds and signs identity tokens."""

    def __init__(
        self,
        lifetime_seconds: int = 3600,
        *,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock
        self.metrics = metrics
        self.logger = get_logger("identity.tokens.minter")

    def mint(
        self,
        claims: IdentityClaims,
        *,
        audience: str,
        subject: str,
        issuer: str,
        key: SigningKeyMaterial,
    ) -> str:
        """Sign a token for ``subject``. The header kid names ``key``'s epoch."""
        issued_at = int(self._clock())
        payload: Dict[str, Any] = {
            **claims.custom_claims(),
            "iss": issuer,
            "aud": audience,
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + self.lifetime_seconds,
        }

        try:
            token = jwt.encode(
                payload,
                key.signing_key,
                algorithm=key.algorithm.tag,
                headers={"kid": key.kid},
            )
        except JOSEError as e:
            self.logger.error("Token signing failed", kid=key.kid, error=str(e))
            raise TokenSigningError(details={"kid": key.kid, "error": str(e)}) from e

        if self.metrics:
            self.metrics.increment_counter(
                "tokens_minted_total",
                with_guilds=str(claims.group_ids is not None).lower()
            )
        self.logger.info("Identity token minted", kid=key.kid, sub=subject, audience=audience)
        return token
