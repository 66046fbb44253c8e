"""Build intents from quotes."""

from intentswap.config.tokens import to_atomic
from intentswap.models.intent import Intent
from intentswap.models.swap import SwapQuote

FA_PREFIX = "@"
BPS_DENOMINATOR = 10_000


def canonical_token_identifier(token_type: str) -> str:
    """Coin type tags are used verbatim; fungible-asset addresses get an '@' prefix."""
    if "::" in token_type or token_type.startswith(FA_PREFIX):
        return token_type
    return FA_PREFIX + token_type


def raw_token_type(identifier: str) -> str:
    return identifier[len(FA_PREFIX):] if identifier.startswith(FA_PREFIX) else identifier


def min_buy_amount(start_buy_amount: int, slippage_bps: int) -> int:
    return start_buy_amount * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def build_intent(
    quote: SwapQuote,
    maker: str,
    nonce: int,
    now: int,
    validity_window: int = 300,
    slippage_bps: int = 500,
) -> Intent:
    """Dutch-style intent: accept from the quoted amount down to the slippage floor."""
    sell_atomic = to_atomic(quote.sell_amount, quote.sell_token.decimals)
    buy_atomic = to_atomic(quote.buy_amount, quote.buy_token.decimals)
    return Intent(
        maker=maker,
        nonce=nonce,
        sell_token=canonical_token_identifier(quote.sell_token.type),
        buy_token=canonical_token_identifier(quote.buy_token.type),
        sell_amount=sell_atomic,
        start_buy_amount=buy_atomic,
        end_buy_amount=min_buy_amount(buy_atomic, slippage_bps),
        start_time=now,
        end_time=now + validity_window,
    )
