"""Broadcast newly settled swaps from the relayer activity feed to subscribers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from intentswap.config.tokens import TokenRegistry
from intentswap.execution.notifier import Notifier, deliver
from intentswap.ingest.relayer_client import RelayerClient, RelayerClientError
from intentswap.models.common import unix_now_ms
from intentswap.models.relayer import ActivityEntry
from intentswap.reporting.formatters import format_activity

logger = logging.getLogger(__name__)


class ActivityMonitor:
    def __init__(
        self,
        relayer: RelayerClient,
        registry: TokenRegistry,
        notifier: Notifier,
        poll_interval: float = 5.0,
        max_age_minutes: int = 60,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        wall_clock_ms: Callable[[], int] = unix_now_ms,
    ):
        self.relayer = relayer
        self.registry = registry
        self.notifier = notifier
        self.poll_interval = poll_interval
        self.max_age_ms = max_age_minutes * 60_000
        self._sleep = sleep
        self._wall_clock_ms = wall_clock_ms
        self.subscribers: set[str] = set()
        self.processed_hashes: dict[str, int] = {}  # hash -> entry timestamp (ms)
        self._task: asyncio.Task | None = None

    def subscribe(self, recipient: str) -> None:
        self.subscribers.add(recipient)

    def unsubscribe(self, recipient: str) -> None:
        self.subscribers.discard(recipient)

    async def check_activity(self) -> int:
        """One poll cycle. Returns the number of swaps broadcast."""
        if not self.subscribers:
            return 0
        try:
            entries = await self.relayer.get_activity()
        except RelayerClientError as e:
            logger.error("Error polling activity: %s", e)
            return 0

        now_ms = self._wall_clock_ms()
        self._prune(now_ms)
        fresh = [e for e in entries if e.hash and e.hash not in self.processed_hashes]
        fresh.reverse()  # feed is newest first

        broadcast = 0
        for entry in fresh:
            self.processed_hashes[entry.hash] = entry.timestamp
            if now_ms - entry.timestamp >= self.max_age_ms:
                continue
            message = format_activity(entry, self.registry)
            for recipient in sorted(self.subscribers):
                await deliver(self.notifier, recipient, message)
            broadcast += 1
        if broadcast:
            logger.info("Broadcast %d new swaps to %d subscribers", broadcast, len(self.subscribers))
        return broadcast

    def _prune(self, now_ms: int) -> None:
        """Forget hashes past the broadcast age; they can never be sent again."""
        expired = [h for h, ts in self.processed_hashes.items() if now_ms - ts >= self.max_age_ms]
        for h in expired:
            del self.processed_hashes[h]

    async def run(self, max_polls: int | None = None) -> None:
        polls = 0
        while max_polls is None or polls < max_polls:
            await self.check_activity()
            polls += 1
            await self._sleep(self.poll_interval)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            logger.info("Starting activity monitor")
            self._task = asyncio.create_task(self.run(), name="activity-monitor")
        return self._task

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def recent_swaps(self, limit: int = 5) -> list[ActivityEntry]:
        try:
            entries = await self.relayer.get_activity()
        except RelayerClientError as e:
            logger.error("Error fetching recent swaps: %s", e)
            return []
        return entries[:limit]
