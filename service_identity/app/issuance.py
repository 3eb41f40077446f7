"""
Identity issuance flow.

callback form -> code exchange -> profile (verified check) -> memberships
-> signing key -> signed identity token
"""

from typing import Optional

from shared.errors import UnverifiedIdentityError
from shared.logging import get_logger, set_subject_context
from shared.observability import ObservabilityManager
from .keys.manager import SigningKeyManager
from .provider.client import ProviderClient
from .tokens.minter import TokenMinter
from .tokens.models import IdentityClaims


class IdentityIssuer:
    """Turns a provider authorization code into a signed identity token."""

    def __init__(
        self,
        provider: ProviderClient,
        key_manager: SigningKeyManager,
        minter: TokenMinter,
        audience: str,
        observability: Optional[ObservabilityManager] = None,
    ):
        self.provider = provider
        self.key_manager = key_manager
        self.minter = minter
        self.audience = audience
        self.observability = observability
        self.logger = get_logger("identity.issuance")

    async def issue(
        self,
        *,
        code: str,
        code_verifier: str,
        redirect_uri: str,
        grant_type: str,
        issuer: str,
    ) -> str:
        """Run the full flow and return the signed token.

        Raises UpstreamRejectedError when the exchange or the profile call is
        rejected and UnverifiedIdentityError when the profile is not verified.
        """
        provider_token = await self.provider.exchange_code(code, code_verifier, redirect_uri, grant_type)
        profile = await self.provider.fetch_profile(provider_token)
        set_subject_context(profile.id)

        if not profile.verified:
            self.logger.warning("Rejected unverified identity", subject_id=profile.id)
            raise UnverifiedIdentityError(details={"subject_id": profile.id})

        memberships = await self.provider.fetch_memberships(provider_token)
        claims = IdentityClaims(
            subject_id=profile.id,
            email=profile.email or "",
            group_ids=[m.id for m in memberships] if memberships is not None else None,
        )

        key = await self.key_manager.acquire()
        token = self.minter.mint(
            claims,
            audience=self.audience,
            subject=profile.id,
            issuer=issuer,
            key=key,
        )

        if self.observability:
            self.observability.log_business_event(
                "identity_token_issued",
                subject_id=profile.id,
                kid=key.kid,
                guilds=len(claims.group_ids) if claims.group_ids is not None else None,
            )
        return token
