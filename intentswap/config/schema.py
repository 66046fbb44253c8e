"""Pydantic v2 configuration schema with strict validation."""

from enum import StrEnum

from pydantic import BaseModel, Field

INTENT_SWAP_ADDRESS = "0xbd128d4f1dbb87783658bed4a4046f3811015952110f321863c34f161eb07611"


class SignerBackend(StrEnum):
    LOCAL = "local"  # Ed25519 key from INTENTSWAP_PRIVATE_KEY
    CUSTODY = "custody"  # remote custody API


class TokenConfig(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    symbol: str
    type: str  # coin type tag ("0x1::aptos_coin::AptosCoin") or FA metadata address
    decimals: int = Field(default=8, ge=0, le=18)


class ChainConfig(BaseModel):
    model_config = {"extra": "forbid"}

    fullnode_url: str = "https://testnet.movementnetwork.xyz/v1"
    contract_address: str = INTENT_SWAP_ADDRESS
    max_gas_amount: int = Field(default=200_000, gt=0)
    tx_expiration_seconds: int = Field(default=600, gt=0)
    confirmation_timeout_seconds: float = Field(default=30.0, gt=0.0)
    confirmation_poll_seconds: float = Field(default=1.0, gt=0.0)
    request_timeout_seconds: float = Field(default=30.0, gt=0.0)


class RelayerConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = "http://localhost:3001"
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class SigningConfig(BaseModel):
    model_config = {"extra": "forbid"}

    backend: SignerBackend = SignerBackend.LOCAL
    envelope_prefix: str = "APTOS"
    custody_base_url: str = "https://api.privy.io"


class WalletConfig(BaseModel):
    model_config = {"extra": "forbid"}

    handle: str = "default"
    address: str = ""  # derived from the local key when empty


class SwapConfig(BaseModel):
    model_config = {"extra": "forbid"}

    validity_window_seconds: int = Field(default=300, ge=1)
    slippage_bps: int = Field(default=500, ge=0, le=10_000)
    auto_deposit: bool = True


class TrackingConfig(BaseModel):
    model_config = {"extra": "forbid"}

    poll_interval_seconds: float = Field(default=5.0, gt=0.0)
    timeout_seconds: float = Field(default=60.0, gt=0.0)
    recency_window_seconds: float | None = Field(default=None, gt=0.0)
    order_history_limit: int = Field(default=10, ge=1)

    @property
    def effective_recency_window(self) -> float:
        """Defaults to twice the polling timeout."""
        if self.recency_window_seconds is not None:
            return self.recency_window_seconds
        return self.timeout_seconds * 2


class AlertConfig(BaseModel):
    model_config = {"extra": "forbid"}

    enabled: bool = False
    webhook_url: str = ""
    recipient: str = ""


class MonitorConfig(BaseModel):
    model_config = {"extra": "forbid"}

    poll_interval_seconds: float = Field(default=5.0, gt=0.0)
    max_age_minutes: int = Field(default=60, ge=1)


class EngineConfig(BaseModel):
    model_config = {"extra": "forbid"}

    chain: ChainConfig = ChainConfig()
    relayer: RelayerConfig = RelayerConfig()
    signing: SigningConfig = SigningConfig()
    wallet: WalletConfig = WalletConfig()
    swap: SwapConfig = SwapConfig()
    tracking: TrackingConfig = TrackingConfig()
    alerts: AlertConfig = AlertConfig()
    monitor: MonitorConfig = MonitorConfig()
    tokens: list[TokenConfig] = []
