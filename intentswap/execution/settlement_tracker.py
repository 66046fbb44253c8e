"""Settlement tracking: poll the relayer until an intent fills, fails or times out.

State machine per intent: SUBMITTED -> {FILLED, FAILED, EXPIRED}. FILLED and
FAILED come from the relayer activity feed; EXPIRED is purely local and is not
announced to the user. Relayer outages during a poll cycle are logged and the
loop carries on until its deadline.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from intentswap.config.tokens import TokenRegistry, from_atomic
from intentswap.errors import TransientPollError
from intentswap.execution.notifier import Notifier, deliver, settlement_message
from intentswap.ingest.relayer_client import RelayerClient, RelayerClientError
from intentswap.models.common import normalize_hash, unix_now_ms
from intentswap.models.order import Order, OrderStatus, SettlementOutcome, SettlementStatus
from intentswap.models.relayer import ActivityEntry, PendingOrder

logger = logging.getLogger(__name__)

FAILED_ON_CHAIN = "Order failed on-chain"
TIMED_OUT = "Timeout waiting for order completion"


def _same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def pending_to_order(order: PendingOrder, registry: TokenRegistry, now_ms: int) -> Order:
    intent = order.intent
    return Order(
        id=order.id,
        maker=intent.maker,
        sell_token=registry.symbol_for(intent.sell_token_type),
        buy_token=registry.symbol_for(intent.buy_token_type),
        sell_amount=from_atomic(intent.sell_amount, registry.decimals_for(intent.sell_token_type)),
        buy_amount=from_atomic(intent.quoted_buy_amount, registry.decimals_for(intent.buy_token_type)),
        status=OrderStatus.PENDING,
        timestamp=order.timestamp or now_ms,
        nonce=intent.nonce,
    )


def activity_to_order(entry: ActivityEntry, registry: TokenRegistry) -> Order:
    intent = entry.intent
    return Order(
        id=entry.hash,
        maker=intent.maker,
        sell_token=registry.symbol_for(intent.sell_token_type),
        buy_token=registry.symbol_for(intent.buy_token_type),
        sell_amount=from_atomic(intent.sell_amount, registry.decimals_for(intent.sell_token_type)),
        buy_amount=from_atomic(intent.quoted_buy_amount, registry.decimals_for(intent.buy_token_type)),
        status=OrderStatus.FILLED if entry.success else OrderStatus.CANCELLED,
        timestamp=entry.timestamp,
        nonce=intent.nonce,
        tx_hash=entry.hash or None,
    )


class SettlementTracker:
    def __init__(
        self,
        relayer: RelayerClient,
        registry: TokenRegistry,
        poll_interval: float = 5.0,
        timeout: float = 60.0,
        recency_window: float | None = None,
        history_limit: int = 10,
        notifier: Notifier | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        wall_clock_ms: Callable[[], int] = unix_now_ms,
    ):
        self.relayer = relayer
        self.registry = registry
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.recency_window = recency_window if recency_window is not None else timeout * 2
        self.history_limit = history_limit
        self.notifier = notifier
        self._sleep = sleep
        self._clock = clock
        self._wall_clock_ms = wall_clock_ms

    async def wait_for_settlement(self, intent_hash: str, maker: str) -> SettlementOutcome:
        """Poll until the relayer reports a result or the deadline passes.

        The deadline is hard: an in-flight poll is cut off when it is reached
        and the wait between polls never runs past it.
        """
        deadline = self._clock() + self.timeout
        polls = 0
        while self._clock() < deadline:
            polls += 1
            try:
                async with asyncio.timeout(deadline - self._clock()):
                    outcome = await self._poll_once(intent_hash, maker, polls)
            except TransientPollError as e:
                logger.warning("Poll %d for %s failed: %s", polls, intent_hash, e)
                outcome = None
            except TimeoutError:
                logger.warning("Poll %d for %s still running at the deadline", polls, intent_hash)
                break
            if outcome is not None:
                logger.info("Intent %s settled: %s after %d polls", intent_hash, outcome.status, polls)
                return outcome
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await self._sleep(min(self.poll_interval, remaining))

        logger.info("Intent %s unsettled after %.0fs, giving up", intent_hash, self.timeout)
        return self._expired(intent_hash, polls)

    def _expired(self, intent_hash: str, polls: int, message: str = TIMED_OUT) -> SettlementOutcome:
        return SettlementOutcome(
            intent_hash=intent_hash,
            status=SettlementStatus.EXPIRED,
            message=message,
            polls=polls,
        )

    async def _poll_once(self, intent_hash: str, maker: str, polls: int) -> SettlementOutcome | None:
        try:
            activity = await self.relayer.get_activity()
        except RelayerClientError as e:
            raise TransientPollError(str(e)) from e

        entry = self.match_activity(activity, intent_hash, maker)
        if entry is not None:
            if entry.success:
                return SettlementOutcome(
                    intent_hash=intent_hash,
                    status=SettlementStatus.FILLED,
                    reference=entry.hash,
                    polls=polls,
                )
            return SettlementOutcome(
                intent_hash=intent_hash,
                status=SettlementStatus.FAILED,
                reference=entry.hash or None,
                message=FAILED_ON_CHAIN,
                polls=polls,
            )

        try:
            pending = await self.relayer.get_orders()
        except RelayerClientError as e:
            raise TransientPollError(str(e)) from e

        target = normalize_hash(intent_hash)
        still_pending = any(
            normalize_hash(o.id) == target and _same_address(o.intent.maker, maker)
            for o in pending
        )
        logger.debug(
            "Poll %d: %s %s", polls, intent_hash,
            "still pending" if still_pending else "not visible yet",
        )
        return None

    def match_activity(
        self, activity: list[ActivityEntry], intent_hash: str, maker: str
    ) -> ActivityEntry | None:
        """Exact hash match first, then the maker's most recent settlement.

        The fallback accepts any entry by the same maker that settled within
        the recency window; with several concurrent intents from one maker it
        can attribute another intent's settlement to this one.
        """
        mine = [e for e in activity if _same_address(e.intent.maker, maker)]
        target = normalize_hash(intent_hash)
        for entry in mine:
            if entry.hash and normalize_hash(entry.hash) == target:
                return entry

        now_ms = self._wall_clock_ms()
        window_ms = self.recency_window * 1000
        for entry in mine:
            if now_ms - entry.timestamp < window_ms:
                return entry
        return None

    async def get_orders(self, maker: str) -> list[Order]:
        """Pending and settled orders for ``maker``, newest first."""
        try:
            pending = await self.relayer.get_orders()
            activity = await self.relayer.get_activity()
        except RelayerClientError as e:
            logger.error("Failed to fetch orders for %s: %s", maker, e)
            return []

        now_ms = self._wall_clock_ms()
        orders = [
            pending_to_order(o, self.registry, now_ms)
            for o in pending
            if _same_address(o.intent.maker, maker)
        ]
        orders.extend(
            activity_to_order(e, self.registry)
            for e in activity
            if _same_address(e.intent.maker, maker)
        )
        orders.sort(key=lambda o: o.timestamp, reverse=True)
        return orders[: self.history_limit]

    async def order_status(self, intent_hash: str, maker: str) -> Order | None:
        target = normalize_hash(intent_hash)
        for order in await self.get_orders(maker):
            if normalize_hash(order.id) == target:
                return order
        return None

    def dispatch(self, intent_hash: str, maker: str, recipient: str = "") -> asyncio.Task:
        """Track in a detached task; the result is also sent to ``recipient``."""
        return asyncio.create_task(
            self._track(intent_hash, maker, recipient),
            name=f"settle-{intent_hash[:12]}",
        )

    async def _track(self, intent_hash: str, maker: str, recipient: str) -> SettlementOutcome:
        try:
            outcome = await self.wait_for_settlement(intent_hash, maker)
        except Exception as e:
            logger.exception("Tracking %s aborted", intent_hash)
            outcome = self._expired(intent_hash, 0, f"Tracking aborted: {e}")

        message = settlement_message(outcome)
        if message is not None and self.notifier is not None:
            await deliver(self.notifier, recipient, message)
        return outcome
