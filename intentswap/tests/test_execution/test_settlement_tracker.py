"""Tests for settlement polling and order aggregation."""

import asyncio
import time

import pytest
import respx
from httpx import Response

from intentswap.execution.settlement_tracker import SettlementTracker
from intentswap.ingest.relayer_client import RelayerClient
from intentswap.models.order import OrderStatus, SettlementStatus
from intentswap.tests.fakes import (
    MAKER,
    FakeRelayer,
    RecordingNotifier,
    activity_entry,
    pending_order,
)

H = "0x" + "1f" * 32
OTHER = "0x" + "2e" * 32
NOW_MS = 1_700_000_000_000
BASE = "http://relayer.test"


@pytest.fixture
def tracker(fake_relayer, registry, clock) -> SettlementTracker:
    return SettlementTracker(
        fake_relayer,
        registry,
        poll_interval=5,
        timeout=60,
        sleep=clock.sleep,
        clock=clock.monotonic,
        wall_clock_ms=clock.wall_ms,
    )


class TestWaitForSettlement:
    @pytest.mark.asyncio
    async def test_filled_on_third_poll(self, tracker, fake_relayer, clock):
        old = NOW_MS - 10 * 60_000
        fake_relayer.activity_script = [
            [],
            [activity_entry(OTHER, timestamp=old)],
            [activity_entry(H)],
        ]
        outcome = await tracker.wait_for_settlement(H, MAKER)
        assert outcome.status == SettlementStatus.FILLED
        assert outcome.reference == H
        assert outcome.polls == 3
        assert clock.now == 10

    @pytest.mark.asyncio
    async def test_timeout_expires_silently(self, tracker, clock):
        outcome = await tracker.wait_for_settlement(H, MAKER)
        assert outcome.status == SettlementStatus.EXPIRED
        assert outcome.terminal
        assert not outcome.filled
        assert outcome.polls == 12
        assert clock.now == 60

    @pytest.mark.asyncio
    async def test_failed_entry_returns_immediately(self, tracker, fake_relayer, clock):
        fake_relayer.activity = [activity_entry(H, success=False)]
        outcome = await tracker.wait_for_settlement(H, MAKER)
        assert outcome.status == SettlementStatus.FAILED
        assert outcome.message == "Order failed on-chain"
        assert clock.now == 0

    @pytest.mark.asyncio
    async def test_poll_errors_are_retried(self, tracker, fake_relayer, clock, relayer_down):
        fake_relayer.activity_script = [relayer_down, relayer_down, [activity_entry(H)]]
        outcome = await tracker.wait_for_settlement(H, MAKER)
        assert outcome.filled
        assert outcome.polls == 3
        assert clock.sleeps == [5, 5]

    @pytest.mark.asyncio
    async def test_hash_match_is_case_insensitive(self, tracker, fake_relayer):
        fake_relayer.activity = [activity_entry(H.upper().replace("0X", "0x"), timestamp=0)]
        outcome = await tracker.wait_for_settlement(H, MAKER.upper().replace("0X", "0x"))
        assert outcome.filled

    @pytest.mark.asyncio
    async def test_other_maker_ignored(self, tracker, fake_relayer):
        fake_relayer.activity = [activity_entry(H, maker="0x" + "99" * 20)]
        outcome = await tracker.wait_for_settlement(H, MAKER)
        assert outcome.status == SettlementStatus.EXPIRED


class TestMatchActivity:
    def test_recent_entry_from_same_maker(self, tracker):
        entry = activity_entry(OTHER, timestamp=NOW_MS - 30_000)
        assert tracker.match_activity([entry], H, MAKER) is entry

    def test_stale_entry_not_matched(self, tracker):
        entry = activity_entry(OTHER, timestamp=NOW_MS - 121_000)
        assert tracker.match_activity([entry], H, MAKER) is None

    def test_exact_hash_preferred(self, tracker):
        recent_failure = activity_entry(OTHER, success=False, timestamp=NOW_MS - 1_000)
        mine = activity_entry(H, timestamp=NOW_MS - 100_000)
        assert tracker.match_activity([recent_failure, mine], H, MAKER) is mine

    def test_custom_recency_window(self, fake_relayer, registry, clock):
        tracker = SettlementTracker(
            fake_relayer, registry, recency_window=10, wall_clock_ms=clock.wall_ms
        )
        entry = activity_entry(OTHER, timestamp=NOW_MS - 30_000)
        assert tracker.match_activity([entry], H, MAKER) is None


class TestGetOrders:
    @pytest.mark.asyncio
    async def test_merges_and_sorts(self, tracker, fake_relayer):
        fake_relayer.orders = [pending_order("0xp1", timestamp=NOW_MS - 1_000)]
        fake_relayer.activity = [
            activity_entry("0xa1", timestamp=NOW_MS - 5_000),
            activity_entry("0xa2", success=False, timestamp=NOW_MS - 500),
            activity_entry("0xa3", maker="0x" + "99" * 20),
        ]
        orders = await tracker.get_orders(MAKER.upper().replace("0X", "0x"))
        assert [o.id for o in orders] == ["0xa2", "0xp1", "0xa1"]
        assert [o.status for o in orders] == [
            OrderStatus.CANCELLED, OrderStatus.PENDING, OrderStatus.FILLED,
        ]

    @pytest.mark.asyncio
    async def test_amounts_in_human_units(self, tracker, fake_relayer):
        fake_relayer.orders = [pending_order("0xp1", timestamp=NOW_MS)]
        fake_relayer.activity = [activity_entry("0xa1", timestamp=NOW_MS - 1)]
        pending, filled = await tracker.get_orders(MAKER)
        assert pending.sell_token == "USDC.e"
        assert pending.sell_amount == pytest.approx(2.5)
        assert pending.buy_amount == pytest.approx(0.5)
        assert pending.tx_hash is None
        assert filled.sell_token == "MOVE"
        assert filled.sell_amount == pytest.approx(1.0)
        assert filled.buy_amount == pytest.approx(4.75)
        assert filled.tx_hash == "0xa1"

    @pytest.mark.asyncio
    async def test_pending_without_timestamp_uses_now(self, tracker, fake_relayer):
        fake_relayer.orders = [pending_order("0xp1")]
        (order,) = await tracker.get_orders(MAKER)
        assert order.timestamp == NOW_MS

    @pytest.mark.asyncio
    async def test_unknown_token(self, tracker, fake_relayer):
        fake_relayer.activity = [activity_entry("0xa1", sell_token_type="0x9::fake::Coin")]
        (order,) = await tracker.get_orders(MAKER)
        assert order.sell_token == "UNKNOWN"
        assert order.sell_amount == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_capped(self, fake_relayer, registry, clock):
        tracker = SettlementTracker(fake_relayer, registry, history_limit=3, wall_clock_ms=clock.wall_ms)
        fake_relayer.activity = [activity_entry(f"0x{i:02x}", timestamp=i) for i in range(8)]
        orders = await tracker.get_orders(MAKER)
        assert [o.id for o in orders] == ["0x07", "0x06", "0x05"]

    @pytest.mark.asyncio
    async def test_relayer_error_returns_empty(self, tracker, fake_relayer, relayer_down):
        fake_relayer.activity_script = [relayer_down]
        assert await tracker.get_orders(MAKER) == []

    @pytest.mark.asyncio
    async def test_order_status(self, tracker, fake_relayer):
        fake_relayer.activity = [activity_entry(H, timestamp=NOW_MS)]
        order = await tracker.order_status(H.upper().replace("0X", "0x"), MAKER)
        assert order.id == H
        assert await tracker.order_status(OTHER, MAKER) is None


class TestDispatch:
    @pytest.mark.asyncio
    async def test_filled_is_notified(self, fake_relayer, registry, clock):
        notifier = RecordingNotifier()
        tracker = SettlementTracker(
            fake_relayer, registry, notifier=notifier,
            sleep=clock.sleep, clock=clock.monotonic, wall_clock_ms=clock.wall_ms,
        )
        fake_relayer.activity_script = [[], [activity_entry(H)]]
        outcome = await tracker.dispatch(H, MAKER, recipient="chat-1")
        assert outcome.filled
        assert len(notifier.sent) == 1
        recipient, message = notifier.sent[0]
        assert recipient == "chat-1"
        assert "Order filled" in message

    @pytest.mark.asyncio
    async def test_timeout_not_notified(self, fake_relayer, registry, clock):
        notifier = RecordingNotifier()
        tracker = SettlementTracker(
            fake_relayer, registry, timeout=10, notifier=notifier,
            sleep=clock.sleep, clock=clock.monotonic, wall_clock_ms=clock.wall_ms,
        )
        outcome = await tracker.dispatch(H, MAKER, recipient="chat-1")
        assert outcome.status == SettlementStatus.EXPIRED
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_notifier_failure_swallowed(self, fake_relayer, registry, clock):
        notifier = RecordingNotifier(fail_for={"chat-1"})
        tracker = SettlementTracker(
            fake_relayer, registry, notifier=notifier,
            sleep=clock.sleep, clock=clock.monotonic, wall_clock_ms=clock.wall_ms,
        )
        fake_relayer.activity = [activity_entry(H, success=False)]
        outcome = await tracker.dispatch(H, MAKER, recipient="chat-1")
        assert outcome.status == SettlementStatus.FAILED


class HangingRelayer(FakeRelayer):
    """Relayer whose activity call never answers within the test."""

    async def get_activity(self):
        self.activity_calls += 1
        await asyncio.sleep(5)
        return []


class TestHardDeadline:
    @pytest.mark.asyncio
    async def test_wait_capped_at_deadline(self, fake_relayer, registry, clock):
        tracker = SettlementTracker(
            fake_relayer, registry, poll_interval=5, timeout=12,
            sleep=clock.sleep, clock=clock.monotonic, wall_clock_ms=clock.wall_ms,
        )
        outcome = await tracker.wait_for_settlement(H, MAKER)
        assert outcome.status == SettlementStatus.EXPIRED
        assert outcome.polls == 3
        assert clock.sleeps == [5, 5, 2]
        assert clock.now == 12

    @pytest.mark.asyncio
    async def test_hanging_poll_cut_off(self, registry):
        relayer = HangingRelayer()
        notifier = RecordingNotifier()
        tracker = SettlementTracker(
            relayer, registry, poll_interval=0.1, timeout=0.3, notifier=notifier
        )
        started = time.monotonic()
        outcome = await tracker.dispatch(H, MAKER, recipient="chat-1")
        elapsed = time.monotonic() - started
        assert outcome.status == SettlementStatus.EXPIRED
        assert elapsed < 1.0
        assert relayer.activity_calls == 1
        assert notifier.sent == []


class TestMalformedRelayerResponses:
    @pytest.fixture
    def http_tracker(self, registry, clock) -> SettlementTracker:
        return SettlementTracker(
            RelayerClient(BASE),
            registry,
            poll_interval=5,
            timeout=20,
            notifier=RecordingNotifier(),
            sleep=clock.sleep,
            clock=clock.monotonic,
            wall_clock_ms=clock.wall_ms,
        )

    @pytest.mark.asyncio
    @respx.mock
    async def test_null_orders_keeps_polling(self, http_tracker):
        respx.get(f"{BASE}/activity").mock(side_effect=[
            Response(200, json={"orders": None}),
            Response(200, json={"orders": [_wire(activity_entry(H))]}),
        ])
        respx.get(f"{BASE}/orders").mock(return_value=Response(200, json={"orders": None}))
        outcome = await http_tracker.dispatch(H, MAKER, recipient="chat-1")
        assert outcome.filled
        assert outcome.polls == 2
        assert "Order filled" in http_tracker.notifier.sent[0][1]

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_body_keeps_polling(self, http_tracker):
        respx.get(f"{BASE}/activity").mock(side_effect=[
            Response(200, text="<html>gateway</html>"),
            Response(200, json={"orders": [_wire(activity_entry(H))]}),
        ])
        outcome = await http_tracker.dispatch(H, MAKER, recipient="chat-1")
        assert outcome.filled
        assert outcome.polls == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_persistent_garbage_expires_silently(self, http_tracker, clock):
        respx.get(f"{BASE}/activity").mock(
            return_value=Response(200, text="<html>gateway</html>")
        )
        outcome = await http_tracker.dispatch(H, MAKER, recipient="chat-1")
        assert outcome.status == SettlementStatus.EXPIRED
        assert outcome.polls == 4
        assert clock.now == 20
        assert http_tracker.notifier.sent == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_orders_survives_garbage(self, http_tracker):
        respx.get(f"{BASE}/orders").mock(return_value=Response(200, text="oops"))
        assert await http_tracker.get_orders(MAKER) == []


def _wire(entry) -> dict:
    return entry.model_dump(mode="json", by_alias=True)
