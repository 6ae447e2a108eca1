"""Client side of the memory sync protocol.

Pushes the local replica to the shared one and absorbs the merged answer,
so both copies reach the same state in one round trip.
"""

import asyncio
import logging
import time

import httpx

from tradejournal.schemas.memory import AgentMemory, MemoryEnvelope, MemorySyncRequest
from tradejournal.services.memory import MemoryReplica

logger = logging.getLogger(__name__)


class MemorySyncClient:
    def __init__(
        self,
        replica: MemoryReplica,
        base_url: str,
        cooldown_seconds: float = 60.0,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.replica = replica
        self.base_url = base_url.rstrip("/")
        self.cooldown_seconds = cooldown_seconds
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None
        self._lock = asyncio.Lock()
        self._last_sync: float | None = None  # monotonic
        self.last_synced_at: int | None = None  # epoch ms, for status()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _in_cooldown(self) -> bool:
        if self._last_sync is None:
            return False
        return time.monotonic() - self._last_sync < self.cooldown_seconds

    async def sync_to_shared(self, force: bool = False) -> bool:
        """Push local memory, absorb the merged result. False when skipped or failed."""
        return await self._run("push", self._push, force)

    async def sync_from_shared(self, force: bool = False) -> bool:
        """Pull the shared memory and absorb it. False when skipped or failed."""
        return await self._run("pull", self._pull, force)

    async def force_sync(self) -> bool:
        return await self.sync_to_shared(force=True)

    async def _run(self, name: str, step, force: bool) -> bool:
        if self._lock.locked():
            logger.info(f"[memory_sync] Skipping {name}: sync already in progress")
            return False
        if not force and self._in_cooldown():
            logger.debug(f"[memory_sync] Skipping {name}: inside cooldown window")
            return False

        async with self._lock:
            try:
                remote = await step()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"[memory_sync] {name} failed: {e}")
                return False

            # Replica I/O runs off the event loop
            merged = await asyncio.to_thread(self.replica.absorb, remote)
            self._last_sync = time.monotonic()
            self.last_synced_at = int(time.time() * 1000)
            logger.info(f"[memory_sync] {name} ok: level {merged.level}, {len(merged.lessons)} lessons")
            return True

    async def _push(self) -> AgentMemory:
        client = await self._get_client()
        local = await asyncio.to_thread(self.replica.get)
        body = MemorySyncRequest(memory=local).to_wire()
        response = await client.post(f"{self.base_url}/api/memory/sync", json=body)
        response.raise_for_status()
        return MemoryEnvelope.model_validate(response.json()).memory

    async def _pull(self) -> AgentMemory:
        client = await self._get_client()
        response = await client.get(f"{self.base_url}/api/memory")
        response.raise_for_status()
        return MemoryEnvelope.model_validate(response.json()).memory

    def status(self) -> dict:
        return {
            "last_synced": self.last_synced_at,
            "in_progress": self._lock.locked(),
            "cooldown_seconds": self.cooldown_seconds,
        }

    async def close(self):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None
