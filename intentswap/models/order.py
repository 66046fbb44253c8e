"""Order and settlement models."""

from dataclasses import dataclass
from enum import StrEnum


class OrderStatus(StrEnum):
    PENDING = "PENDING"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class SettlementStatus(StrEnum):
    SUBMITTED = "SUBMITTED"
    FILLED = "FILLED"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"  # local deadline elapsed, never reported by the relayer


@dataclass(frozen=True)
class Order:
    """Snapshot of an intent's lifecycle as reported by the relayer."""

    id: str
    maker: str
    sell_token: str  # symbol
    buy_token: str
    sell_amount: float  # human units
    buy_amount: float
    status: OrderStatus
    timestamp: int  # unix ms
    nonce: str
    tx_hash: str | None = None


@dataclass(frozen=True)
class SettlementOutcome:
    intent_hash: str
    status: SettlementStatus
    reference: str | None = None
    message: str = ""
    polls: int = 0

    @property
    def filled(self) -> bool:
        return self.status == SettlementStatus.FILLED

    @property
    def terminal(self) -> bool:
        return self.status != SettlementStatus.SUBMITTED
