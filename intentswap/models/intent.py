"""Swap intent models: the unsigned intent, its authenticator and signed form."""

from dataclasses import dataclass

from intentswap.errors import InvalidIntent


@dataclass(frozen=True)
class Intent:
    """Swap terms authorized by a maker.

    Amounts are in the token's smallest unit. A fixed-price intent has
    ``start_buy_amount == end_buy_amount``. Any field change needs a new hash
    and a new signature, so instances are immutable.
    """

    maker: str
    nonce: int
    sell_token: str  # canonical identifier, see intent.builder
    buy_token: str
    sell_amount: int | float
    start_buy_amount: int | float
    end_buy_amount: int | float
    start_time: int
    end_time: int

    def __post_init__(self) -> None:
        if self.sell_amount <= 0:
            raise InvalidIntent(f"sell_amount must be positive, got {self.sell_amount}")
        if self.end_buy_amount > self.start_buy_amount:
            raise InvalidIntent(
                f"end_buy_amount {self.end_buy_amount} exceeds "
                f"start_buy_amount {self.start_buy_amount}"
            )
        if self.end_time <= self.start_time:
            raise InvalidIntent(
                f"end_time {self.end_time} must be after start_time {self.start_time}"
            )

    @property
    def is_fixed_price(self) -> bool:
        return self.start_buy_amount == self.end_buy_amount


@dataclass(frozen=True)
class Authenticator:
    """Public key + signature pair proving authorization of a message or tx."""

    public_key: bytes  # 32 bytes, normalized
    signature: bytes

    def to_payload(self) -> dict[str, str]:
        """Fullnode JSON form of an Ed25519 transaction signature."""
        return {
            "type": "ed25519_signature",
            "public_key": "0x" + self.public_key.hex(),
            "signature": "0x" + self.signature.hex(),
        }


@dataclass(frozen=True)
class SignedIntent:
    intent: Intent
    intent_hash: bytes
    signature: bytes
    public_key: bytes
    signing_nonce: str  # 0x-hex of the UTF-8 decimal nonce string

    @property
    def intent_hash_hex(self) -> str:
        return "0x" + self.intent_hash.hex()

    @property
    def authenticator(self) -> Authenticator:
        return Authenticator(public_key=self.public_key, signature=self.signature)
