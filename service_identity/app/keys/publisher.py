"""
Discovery document publisher for the cached public signing key.
"""

from typing import Any, Dict, Optional

from shared.errors import KeyUnavailableError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .cache import KeyCache
from .material import public_descriptor


class KeyPublisher:
    """Exposes the cached public key as a JWKS discovery document."""

    def __init__(self, cache: KeyCache, public_slot: str, metrics: Optional[MetricsCollector] = None):
        self.cache = cache
        self.public_slot = public_slot
        self.metrics = metrics
        self.logger = get_logger("identity.keys.publisher")

    async def publish(self) -> Dict[str, Any]:
        """Return ``{"keys": [descriptor]}`` for the current public key.

        Raises KeyUnavailableError when no usable public key is cached.
        """
        entry = await self.cache.get(self.public_slot)
        if entry is None:
            self._record_lookup("miss")
            raise KeyUnavailableError()

        try:
            descriptor = public_descriptor(entry)
        except ValueError as e:
            self.logger.error("Cached public key unusable", error=str(e))
            self._record_lookup("corrupt")
            raise KeyUnavailableError(details={"error": str(e)}) from e

        self._record_lookup("hit")
        return {"keys": [descriptor]}

    def _record_lookup(self, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("key_cache_lookups_total", slot="public", result=result)
