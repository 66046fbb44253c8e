"""Swap quotes from relayer USD prices."""

import logging

from intentswap.config.tokens import TokenRegistry
from intentswap.ingest.relayer_client import RelayerClient, RelayerClientError
from intentswap.models.swap import SwapQuote

logger = logging.getLogger(__name__)


class QuoteService:
    def __init__(self, relayer: RelayerClient, registry: TokenRegistry):
        self.relayer = relayer
        self.registry = registry

    async def get_quote(
        self, sell_symbol: str, buy_symbol: str, sell_amount: float
    ) -> SwapQuote | None:
        """Quote at the current price ratio. Returns None if a token or price is missing."""
        sell_token = self.registry.by_symbol(sell_symbol)
        buy_token = self.registry.by_symbol(buy_symbol)
        if sell_token is None or buy_token is None:
            logger.error("Token not found: sell=%s, buy=%s", sell_symbol, buy_symbol)
            return None
        if sell_amount <= 0:
            logger.error("Sell amount must be positive, got %s", sell_amount)
            return None

        try:
            prices = await self.relayer.get_prices()
        except RelayerClientError:
            logger.warning("Price fetch failed, no quote for %s->%s", sell_symbol, buy_symbol)
            return None

        sell_price = prices.get(sell_token.type) or prices.get(sell_token.symbol)
        buy_price = prices.get(buy_token.type) or prices.get(buy_token.symbol)
        if not sell_price or not buy_price:
            logger.error(
                "Prices not found: sell=%s(%s), buy=%s(%s)",
                sell_token.symbol, sell_price, buy_token.symbol, buy_price,
            )
            return None

        buy_amount = sell_amount * sell_price / buy_price
        rate = sell_price / buy_price
        logger.info(
            "Quote: %s %s ($%.2f) -> %.4f %s",
            sell_amount, sell_token.symbol, sell_amount * sell_price,
            buy_amount, buy_token.symbol,
        )
        return SwapQuote(
            sell_token=sell_token,
            buy_token=buy_token,
            sell_amount=sell_amount,
            buy_amount=buy_amount,
            rate=rate,
        )
