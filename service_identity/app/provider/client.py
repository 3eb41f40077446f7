"""
HTTP client for the upstream OAuth2 identity provider.
"""

from typing import Any, Callable, List, Optional, TypeVar

import httpx

from shared.errors import UpstreamRejectedError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .models import Membership, ProviderProfile, ProviderToken

T = TypeVar("T")


class ProviderClient:
    """Client for the provider's OAuth2 and user endpoints."""

    def __init__(
        self,
        api_url: str,
        authorize_url: str,
        client_id: str,
        client_secret: str,
        scope: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.authorize_url = authorize_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.metrics = metrics
        self.logger = get_logger("identity.provider")
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def build_authorize_url(
        self,
        client_id: str,
        state: str,
        code_challenge: str,
        redirect_uri: str,
    ) -> str:
        """Provider authorize URL for a PKCE (S256) authorization-code request."""
        url = httpx.URL(
            self.authorize_url,
            params={
                "client_id": client_id,
                "scope": self.scope,
                "state": state,
                "code_challenge": code_challenge,
                "code_challenge_method": "S256",
                "redirect_uri": redirect_uri,
                "response_type": "code",
            },
        )
        return str(url)

    async def exchange_code(
        self,
        code: str,
        code_verifier: str,
        redirect_uri: str,
        grant_type: str,
    ) -> ProviderToken:
        """Trade an authorization code for provider access tokens."""
        response = await self._send(
            "token_exchange",
            "POST",
            "/oauth2/token",
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code_verifier": code_verifier,
                "redirect_uri": redirect_uri,
                "code": code,
                "grant_type": grant_type,
                "scope": self.scope,
            },
        )
        self._raise_for_rejection("token_exchange", response)
        return self._parse("token_exchange", response, ProviderToken.model_validate)

    async def fetch_profile(self, token: ProviderToken) -> ProviderProfile:
        """Fetch the authenticated user's profile."""
        response = await self._send(
            "profile",
            "GET",
            "/users/@me",
            headers={"Authorization": token.authorization},
        )
        self._raise_for_rejection("profile", response)
        return self._parse("profile", response, ProviderProfile.model_validate)

    async def fetch_memberships(self, token: ProviderToken) -> Optional[List[Membership]]:
        """Fetch the user's groups.

        Memberships are optional: any failure (transport error, non-200 answer
        or malformed payload) returns ``None`` instead of raising.
        """
        try:
            response = await self._send(
                "memberships",
                "GET",
                "/users/@me/guilds",
                headers={"Authorization": token.authorization},
            )
            if response.status_code != 200:
                self.logger.info(
                    "Memberships unavailable, omitting guilds claim",
                    status_code=response.status_code
                )
                return None
            return self._parse(
                "memberships",
                response,
                lambda items: [Membership.model_validate(item) for item in items]
            )
        except UpstreamRejectedError as e:
            self.logger.info("Memberships unavailable, omitting guilds claim", error=e.message)
            return None

    async def _send(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            self.logger.error("Identity provider request failed", operation=operation, error=str(e))
            self._record(operation, "error")
            raise UpstreamRejectedError(
                operation,
                "Identity provider unavailable",
                details={"error": str(e)}
            ) from e

        self._record(operation, str(response.status_code))
        return response

    def _raise_for_rejection(self, operation: str, response: httpx.Response) -> None:
        if response.is_success:
            return
        self.logger.warning(
            "Identity provider rejected request",
            operation=operation,
            status_code=response.status_code,
            response=response.text[:200]
        )
        raise UpstreamRejectedError(
            operation,
            f"Identity provider returned {response.status_code}",
            details={"status_code": response.status_code}
        )

    def _parse(self, operation: str, response: httpx.Response, build: Callable[[Any], T]) -> T:
        try:
            return build(response.json())
        except (ValueError, TypeError) as e:
            self.logger.warning("Malformed identity provider response", operation=operation, error=str(e))
            raise UpstreamRejectedError(
                operation,
                "Identity provider returned a malformed payload",
                details={"error": str(e)}
            ) from e

    def _record(self, operation: str, status: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("upstream_requests_total", operation=operation, status=status)
