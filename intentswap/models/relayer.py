"""Relayer wire models for the /activity and /orders feeds."""

from pydantic import BaseModel, ConfigDict, Field


class RelayerIntent(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    maker: str
    nonce: str = "0"
    sell_token_type: str
    buy_token_type: str
    sell_amount: str = "0"
    buy_amount: str | None = None  # limit orders
    start_buy_amount: str | None = None  # market orders
    end_buy_amount: str | None = None
    start_time: str | None = None
    end_time: str | None = None

    @property
    def quoted_buy_amount(self) -> str:
        """Fixed buy amount, else the minimum acceptable end of the range."""
        return self.buy_amount or self.end_buy_amount or self.start_buy_amount or "0"

    @property
    def is_limit(self) -> bool:
        return self.buy_amount is not None and self.start_buy_amount is None


class ActivityEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    hash: str = ""
    success: bool = False
    timestamp: int = 0  # unix ms
    intent: RelayerIntent
    execution_rate_label: str | None = Field(default=None, alias="executionRateLabel")


class PendingOrder(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    intent: RelayerIntent
    signature: str = ""
    public_key: str = Field(default="", alias="publicKey")
    signing_nonce: str = Field(default="", alias="signingNonce")
    timestamp: int | None = None
