"""
Unit tests for KeyPublisher.
"""

import pytest
from jose import jwt

from service_identity.app.keys.cache import MemoryKeyCache
from service_identity.app.keys.manager import SigningKeyManager
from service_identity.app.keys.publisher import KeyPublisher
from service_identity.app.tokens.minter import TokenMinter
from service_identity.app.tokens.models import IdentityClaims
from shared.errors import KeyUnavailableError
from shared.metrics import MetricsCollector
from shared.test_helpers import FakeClock


class TestKeyPublisher:
    """Test cases for KeyPublisher."""

    @pytest.fixture
    def cache(self):
        return MemoryKeyCache()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("identity")

    @pytest.fixture
    def manager(self, cache):
        return SigningKeyManager(cache)

    @pytest.fixture
    def publisher(self, cache, manager, metrics):
        return KeyPublisher(cache, manager.public_slot, metrics=metrics)

    @pytest.mark.asyncio
    async def test_publish_without_key(self, publisher, metrics):
        """Nothing has been minted yet, so there is nothing to publish."""
        with pytest.raises(KeyUnavailableError) as exc_info:
            await publisher.publish()

        assert exc_info.value.status_code == 404
        assert metrics.sample("key_cache_lookups_total", slot="public", result="miss") == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("public_entry", [
        {"kid": "jwtRS256-broken", "alg": "RS256", "jwk": {"kty": "RSA"}},
        {"kid": "jwtRS256-broken", "alg": None, "jwk": {}},
        {"kid": "jwtRS256-broken"},
        "garbage",
    ])
    async def test_publish_undecodable_key(self, cache, publisher, metrics, public_entry):
        """A public half that cannot be decoded is reported as unavailable."""
        await cache.put("identity:signing-key:public", public_entry, 3600)

        with pytest.raises(KeyUnavailableError) as exc_info:
            await publisher.publish()

        assert exc_info.value.status_code == 404
        assert "error" in exc_info.value.details
        assert metrics.sample("key_cache_lookups_total", slot="public", result="corrupt") == 1

    @pytest.mark.asyncio
    async def test_publish_current_key(self, publisher, manager):
        """The document carries one public descriptor for the current epoch."""
        material = await manager.acquire()

        document = await publisher.publish()

        assert len(document["keys"]) == 1
        descriptor = document["keys"][0]
        assert descriptor["kid"] == material.kid
        assert descriptor["alg"] == "RS256"
        assert descriptor["use"] == "sig"
        assert descriptor["kty"] == "RSA"
        assert descriptor["n"] == material.public_jwk["n"]
        assert descriptor["e"] == material.public_jwk["e"]
        assert "d" not in descriptor

    @pytest.mark.asyncio
    async def test_published_key_verifies_minted_token(self, publisher, manager):
        """A token signed with the current key verifies against the document."""
        material = await manager.acquire()
        token = TokenMinter().mint(
            IdentityClaims(subject_id="42", email="a@example.com", group_ids=["7"]),
            audience="client-1",
            subject="42",
            issuer="https://bridge.example.com",
            key=material,
        )

        document = await publisher.publish()
        claims = jwt.decode(token, document, algorithms=["RS256"], audience="client-1")

        assert claims["sub"] == "42"
        assert claims["guilds"] == ["7"]
        assert jwt.get_unverified_header(token)["kid"] == document["keys"][0]["kid"]

    @pytest.mark.asyncio
    async def test_publish_follows_rotation(self):
        """Once the epoch expires and a new pair is written the new key is published."""
        clock = FakeClock()
        cache = MemoryKeyCache(clock=clock)
        manager = SigningKeyManager(cache, ttl_seconds=60)
        publisher = KeyPublisher(cache, manager.public_slot)

        first = await manager.acquire()
        clock.advance(60)
        with pytest.raises(KeyUnavailableError):
            await publisher.publish()

        second = await manager.acquire()
        document = await publisher.publish()

        assert second.kid != first.kid
        assert document["keys"][0]["kid"] == second.kid
