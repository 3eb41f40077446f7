"""
Identity service for the Identity Bridge.
"""

from typing import Optional

import httpx
from fastapi import Form, Query, Request
from fastapi.responses import RedirectResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.observability import get_observability_manager
from .issuance import IdentityIssuer
from .keys.cache import KeyCache, create_key_cache
from .keys.manager import SigningKeyManager
from .keys.material import KeyAlgorithm
from .keys.publisher import KeyPublisher
from .provider.client import ProviderClient
from .tokens.minter import TokenMinter
from .tokens.models import DiscoveryDocument, TokenResponse


class IdentityService(BaseService):
    """Identity service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        key_cache: Optional[KeyCache] = None,
        provider_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__("identity", 8020, config=config)

        self.observability = get_observability_manager(
            "identity",
            log_level=self.config.log_level,
            metrics=self.metrics
        )

        self.key_cache = key_cache or create_key_cache(
            self.config.key_cache_backend,
            self.config.redis_url
        )
        self.key_manager = SigningKeyManager(
            self.key_cache,
            algorithm=KeyAlgorithm.from_tag(
                self.config.signing_key_algorithm,
                self.config.signing_key_size
            ),
            ttl_seconds=self.config.signing_key_ttl_seconds,
            kid_prefix=self.config.signing_key_id_prefix,
            cache_prefix=self.config.key_cache_prefix,
            await_cache_writes=self.config.await_key_cache_writes,
            metrics=self.metrics,
        )
        self.key_publisher = KeyPublisher(
            self.key_cache,
            self.key_manager.public_slot,
            metrics=self.metrics
        )
        self.provider = ProviderClient(
            self.config.provider_api_url,
            self.config.provider_authorize_url,
            self.config.client_id,
            self.config.client_secret,
            self.config.provider_scope,
            timeout=self.config.provider_timeout_seconds,
            transport=provider_transport,
            metrics=self.metrics,
        )
        self.issuer = IdentityIssuer(
            self.provider,
            self.key_manager,
            TokenMinter(self.config.token_lifetime_seconds, metrics=self.metrics),
            audience=self.config.client_id,
            observability=self.observability,
        )

        self._setup_identity_routes()

    def _setup_identity_routes(self):
        """Set up identity-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "identity",
                "message": "Identity Bridge - Identity Service",
                "version": "1.0.0"
            }

        @self.app.get("/authorize")
        async def authorize(
            client_id: str = Query(""),
            state: str = Query(""),
            code_challenge: str = Query(""),
            redirect_uri: str = Query(""),
        ):
            """Redirect to the provider's authorize endpoint."""
            location = self.provider.build_authorize_url(
                client_id=client_id,
                state=state,
                code_challenge=code_challenge,
                redirect_uri=redirect_uri,
            )
            return RedirectResponse(location, status_code=302)

        @self.app.post("/callback", response_model=TokenResponse)
        async def callback(
            request: Request,
            code: str = Form(""),
            code_verifier: str = Form(""),
            redirect_uri: str = Form(""),
            grant_type: str = Form(""),
        ):
            """Exchange an authorization code for a signed identity token."""
            id_token = await self.issuer.issue(
                code=code,
                code_verifier=code_verifier,
                redirect_uri=redirect_uri,
                grant_type=grant_type,
                issuer=f"{request.url.scheme}://{request.url.netloc}",
            )
            return TokenResponse(id_token=id_token)

        @self.app.get("/certificate", response_model=DiscoveryDocument)
        async def certificate():
            """Publish the current verification key."""
            return await self.key_publisher.publish()

    async def _on_startup(self) -> None:
        await self.key_cache.start()

    async def _on_shutdown(self) -> None:
        await self.key_manager.drain()
        await self.provider.close()
        await self.key_cache.stop()

    async def _check_dependencies(self):
        """Check identity dependencies."""
        return {
            "key_cache": "ok" if await self.key_cache.health_check() else "error",
            "signing_key": (await self.key_manager.status()).value,
        }


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = IdentityService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = IdentityService()
    service.run()
