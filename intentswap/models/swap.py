"""Quote and pipeline result models."""

from dataclasses import dataclass

from intentswap.config.schema import TokenConfig


@dataclass(frozen=True)
class SwapQuote:
    sell_token: TokenConfig
    buy_token: TokenConfig
    sell_amount: float  # human units
    buy_amount: float
    rate: float  # buy tokens per sell token

    @property
    def rate_label(self) -> str:
        return f"{self.rate:.6f}"


@dataclass(frozen=True)
class FundingResult:
    token_type: str
    required: int
    balance: int
    deposited: int = 0
    tx_hash: str | None = None

    @property
    def topped_up(self) -> bool:
        return self.deposited > 0


@dataclass(frozen=True)
class SwapResult:
    """Outcome of a user-facing operation. Never raised, always returned."""

    success: bool
    message: str
    intent_hash: str | None = None
    tx_hash: str | None = None
