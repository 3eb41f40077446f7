"""
Integration tests for the identity flow against the mock provider.
"""

import httpx
import pytest
import pytest_asyncio
from jose import jwt

from mocks.provider.server import MockProviderServer
from service_identity.app.main import create_app
from shared.config import get_config

REDIRECT_URI = "https://app.example.com/cb"


class TestIdentityFlow:
    """Integration tests for the complete authorize -> callback -> certificate flow."""

    @pytest.fixture
    def mock_provider(self):
        """Mock identity provider."""
        return MockProviderServer()

    @pytest.fixture
    def identity_app(self, mock_provider):
        """Identity app wired to the mock provider in-process."""
        config = get_config(
            "identity",
            8020,
            key_cache_backend="memory",
            client_id=mock_provider.client_id,
            client_secret=mock_provider.client_secret,
            provider_api_url="http://provider.test/api/v10",
            provider_authorize_url="http://provider.test/oauth2/authorize",
        )
        return create_app(config, provider_transport=httpx.ASGITransport(app=mock_provider.app))

    @pytest_asyncio.fixture
    async def bridge(self, identity_app):
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=identity_app),
            base_url="http://bridge.test"
        ) as client:
            yield client

    @pytest_asyncio.fixture
    async def provider_client(self, mock_provider):
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=mock_provider.app),
            base_url="http://provider.test"
        ) as client:
            yield client

    async def callback(self, bridge, code: str) -> httpx.Response:
        return await bridge.post("/callback", data={
            "code": code,
            "code_verifier": "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk",
            "redirect_uri": REDIRECT_URI,
            "grant_type": "authorization_code",
        })

    @pytest.mark.asyncio
    async def test_complete_identity_flow(self, bridge, provider_client, mock_provider):
        """Test complete identity flow."""
        # 1. Authorize redirects to the provider
        authorize_response = await bridge.get("/authorize", params={
            "client_id": mock_provider.client_id,
            "state": "state-1",
            "code_challenge": "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM",
            "redirect_uri": REDIRECT_URI,
        })
        assert authorize_response.status_code == 302
        provider_location = httpx.URL(authorize_response.headers["location"])
        assert provider_location.path == "/oauth2/authorize"

        # 2. Provider sends the user back with a code
        consent_response = await provider_client.get(
            provider_location.path,
            params=dict(provider_location.params)
        )
        assert consent_response.status_code == 307
        redirect = httpx.URL(consent_response.headers["location"])
        assert redirect.params["state"] == "state-1"
        code = redirect.params["code"]

        # 3. Callback trades the code for an identity token
        callback_response = await self.callback(bridge, code)
        assert callback_response.status_code == 200
        id_token = callback_response.json()["id_token"]

        # 4. Token verifies against the published key
        certificate_response = await bridge.get("/certificate")
        assert certificate_response.status_code == 200
        claims = jwt.decode(
            id_token,
            certificate_response.json(),
            algorithms=["RS256"],
            audience=mock_provider.client_id
        )
        assert claims["sub"] == "100000000000000001"
        assert claims["email"] == "john.doe@example.com"
        assert claims["iss"] == "http://bridge.test"
        assert claims["guilds"] == ["200000000000000001", "200000000000000002"]

    @pytest.mark.asyncio
    async def test_unverified_user_flow(self, bridge, mock_provider):
        """Unverified users get no token and no key is published."""
        response = await self.callback(bridge, mock_provider.code_for("100000000000000002"))

        assert response.status_code == 403
        assert response.json()["message"] == "Please verify your email."
        assert (await bridge.get("/certificate")).status_code == 404

    @pytest.mark.asyncio
    async def test_guilds_unavailable_flow(self, bridge, mock_provider):
        """A membership failure still yields a token, without guilds."""
        response = await self.callback(bridge, mock_provider.code_for("100000000000000003"))

        assert response.status_code == 200
        claims = jwt.get_unverified_claims(response.json()["id_token"])
        assert claims["sub"] == "100000000000000003"
        assert "guilds" not in claims

    @pytest.mark.asyncio
    async def test_unknown_code_flow(self, bridge):
        """A code the provider does not know is an upstream rejection."""
        response = await self.callback(bridge, "code-unknown")

        assert response.status_code == 502
        assert response.json()["code"] == "UPSTREAM_REJECTED"

    @pytest.mark.asyncio
    async def test_tokens_from_different_users_share_key(self, bridge, mock_provider):
        """One key epoch signs tokens for every user."""
        first = await self.callback(bridge, mock_provider.code_for("100000000000000001"))
        second = await self.callback(bridge, mock_provider.code_for("100000000000000003"))

        first_kid = jwt.get_unverified_header(first.json()["id_token"])["kid"]
        second_kid = jwt.get_unverified_header(second.json()["id_token"])["kid"]
        assert first_kid == second_kid

        document = (await bridge.get("/certificate")).json()
        assert [key["kid"] for key in document["keys"]] == [first_kid]
