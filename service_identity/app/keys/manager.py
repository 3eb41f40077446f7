"""
Signing key lifecycle manager.

The manager owns one pair of cache slots (``<prefix>:private`` and
``<prefix>:public``). A signing request that finds both halves cached reuses
them; any miss (absent, expired, halves out of sync, undecodable) generates a
new pair, which is written to both slots with one TTL. Keys are never deleted
explicitly: they leave the system through cache expiry.

Within one process generation is single-flight: acquirers that miss at the
same time wait on one lock and share the pair generated by whichever of them
got there first. Separate processes are not coordinated; when two of them
race the same miss the last pair written wins, and because both halves are
written together exactly one complete pair remains in the cache.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Dict, Optional, Set

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .cache import KeyCache
from .material import KeyAlgorithm, SigningKeyMaterial, entry_kid


class KeyState(str, Enum):
    """Observable states of the signing key slot."""

    NO_KEY = "no_key"
    ACTIVE = "active"


class SigningKeyManager:
    """Acquires, generates and caches the signing key pair."""

    def __init__(
        self,
        cache: KeyCache,
        *,
        algorithm: Optional[KeyAlgorithm] = None,
        ttl_seconds: int = 3600,
        kid_prefix: str = "jwtRS256",
        cache_prefix: str = "identity:signing-key",
        await_cache_writes: bool = True,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.cache = cache
        self.algorithm = algorithm or KeyAlgorithm()
        self.ttl_seconds = ttl_seconds
        self.kid_prefix = kid_prefix
        self.private_slot = f"{cache_prefix}:private"
        self.public_slot = f"{cache_prefix}:public"
        self.await_cache_writes = await_cache_writes
        self.metrics = metrics
        self.logger = get_logger("identity.keys.manager")

        self._lock = asyncio.Lock()
        # Material whose cache write has not completed yet
        self._pending: Optional[SigningKeyMaterial] = None
        self._writes: Set[asyncio.Task] = set()

    async def acquire(self) -> SigningKeyMaterial:
        """Return the active signing key, generating one on a cache miss."""
        material = await self._lookup()
        if material is not None:
            return material

        async with self._lock:
            # Another acquirer may have generated while we waited
            material = self._pending or await self._lookup()
            if material is not None:
                return material

            material = await self._generate()
            await self._store(material)
            return material

    async def status(self) -> KeyState:
        """Report whether an active key pair is cached."""
        private_entry = await self.cache.get(self.private_slot)
        public_entry = await self.cache.get(self.public_slot)
        kid = entry_kid(private_entry)
        if kid is None or kid != entry_kid(public_entry):
            return KeyState.NO_KEY
        return KeyState.ACTIVE

    @property
    def pending_writes(self) -> int:
        """Number of detached cache writes not yet acknowledged."""
        return len(self._writes)

    async def drain(self) -> None:
        """Wait for detached cache writes to land."""
        if self._writes:
            await asyncio.gather(*self._writes, return_exceptions=True)

    async def _lookup(self) -> Optional[SigningKeyMaterial]:
        private_entry = await self.cache.get(self.private_slot)
        if private_entry is None:
            self._record_lookup("miss")
            return None

        if not isinstance(private_entry, dict):
            self.logger.error("Cached signing key is not an object, regenerating")
            self._record_lookup("corrupt")
            return None

        public_entry = await self.cache.get(self.public_slot)
        if public_entry is None or entry_kid(public_entry) != entry_kid(private_entry):
            self.logger.warning(
                "Signing key halves out of sync, regenerating",
                private_kid=entry_kid(private_entry),
                public_kid=entry_kid(public_entry),
            )
            self._record_lookup("mismatch")
            return None

        try:
            material = SigningKeyMaterial.from_cache_entries(private_entry, public_entry)
        except ValueError as e:
            self.logger.error("Cached signing key unusable, regenerating", error=str(e))
            self._record_lookup("corrupt")
            return None

        self._record_lookup("hit")
        return material

    async def _generate(self) -> SigningKeyMaterial:
        start_time = time.time()
        material = await asyncio.to_thread(
            SigningKeyMaterial.generate, self.algorithm, self.kid_prefix
        )
        duration = time.time() - start_time

        if self.metrics:
            self.metrics.increment_counter("signing_key_generations_total", algorithm=self.algorithm.tag)
            self.metrics.observe_histogram("signing_key_generation_duration_seconds", duration)

        self.logger.info(
            "Signing key pair generated",
            kid=material.kid,
            algorithm=self.algorithm.tag,
            key_size=self.algorithm.size,
            duration_ms=round(duration * 1000, 2),
        )
        return material

    async def _store(self, material: SigningKeyMaterial) -> None:
        halves = material.to_cache_entries()
        entries: Dict[str, Any] = {
            self.public_slot: halves["public"],
            self.private_slot: halves["private"],
        }

        if self.await_cache_writes:
            await self.cache.put_many(entries, self.ttl_seconds)
            self.logger.info("Signing key pair cached", kid=material.kid, ttl=self.ttl_seconds)
            return

        self._pending = material
        task = asyncio.create_task(self._write_detached(material, entries))
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)

    async def _write_detached(self, material: SigningKeyMaterial, entries: Dict[str, Any]) -> None:
        try:
            await self.cache.put_many(entries, self.ttl_seconds)
            self.logger.info("Signing key pair cached", kid=material.kid, ttl=self.ttl_seconds)
        except Exception as e:
            # The next acquirer regenerates on the resulting miss
            self.logger.error("Detached signing key write failed", kid=material.kid, error=str(e))
        finally:
            if self._pending is material:
                self._pending = None

    def _record_lookup(self, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("key_cache_lookups_total", slot="private", result=result)
