"""Token lookup and unit conversion."""

import math
from decimal import ROUND_DOWN, Decimal

from intentswap.config.schema import TokenConfig

UNKNOWN_SYMBOL = "UNKNOWN"
FALLBACK_DECIMALS = 8


def to_atomic(amount: float, decimals: int) -> int:
    """Human amount -> smallest unit, truncating toward zero."""
    return int(Decimal(str(amount)).scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def from_atomic(amount: int | str, decimals: int) -> float:
    return int(amount) / math.pow(10, decimals)


class TokenRegistry:
    def __init__(self, tokens: list[TokenConfig]):
        self.tokens = list(tokens)
        self._by_symbol = {t.symbol.lower(): t for t in self.tokens}
        self._by_type = {t.type: t for t in self.tokens}

    def by_symbol(self, symbol: str) -> TokenConfig | None:
        return self._by_symbol.get(symbol.lower())

    def by_type(self, token_type: str) -> TokenConfig | None:
        return self._by_type.get(token_type)

    def symbol_for(self, token_type: str) -> str:
        token = self.by_type(token_type)
        return token.symbol if token else UNKNOWN_SYMBOL

    def decimals_for(self, token_type: str) -> int:
        token = self.by_type(token_type)
        return token.decimals if token else FALLBACK_DECIMALS

    def symbols(self) -> list[str]:
        return [t.symbol for t in self.tokens]
