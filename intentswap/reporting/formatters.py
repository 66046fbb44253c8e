"""Plain-text renderings of quotes, orders, settlement outcomes and activity."""

from intentswap.config.tokens import TokenRegistry, from_atomic
from intentswap.models.order import Order, OrderStatus, SettlementOutcome, SettlementStatus
from intentswap.models.relayer import ActivityEntry
from intentswap.models.swap import SwapQuote

EXPLORER_TX_URL = "https://explorer.movementnetwork.xyz/txn/{}?network=testnet"

_STATUS_MARKS = {
    OrderStatus.FILLED: "+",
    OrderStatus.PENDING: "~",
    OrderStatus.CANCELLED: "x",
    OrderStatus.EXPIRED: "!",
}


def explorer_url(tx_hash: str) -> str:
    return EXPLORER_TX_URL.format(tx_hash)


def short_address(address: str) -> str:
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


def time_ago(timestamp_ms: int, now_ms: int) -> str:
    seconds = max(0, (now_ms - timestamp_ms) // 1000)
    if seconds < 60:
        return f"{seconds}s ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def format_amount(value: float) -> str:
    """Up to four decimals, trailing zeros dropped."""
    text = f"{value:,.4f}".rstrip("0").rstrip(".")
    return text or "0"


def token_label(registry: TokenRegistry, token_type: str) -> str:
    token = registry.by_type(token_type)
    if token is not None:
        return token.symbol
    if "::" in token_type:
        return token_type.split("::")[-1]
    return "FA"


def format_quote(quote: SwapQuote) -> str:
    sell, buy = quote.sell_token.symbol, quote.buy_token.symbol
    return "\n".join([
        "=== Swap Quote ===",
        f"Sell: {quote.sell_amount:.4f} {sell}",
        f"Buy:  ~{quote.buy_amount:.4f} {buy}",
        f"Rate: 1 {sell} = {quote.rate_label} {buy}",
        "Final amount may vary based on market conditions.",
    ])


def format_orders(orders: list[Order], now_ms: int) -> str:
    if not orders:
        return "No orders found"
    lines = ["=== Recent Orders ==="]
    for o in orders:
        mark = _STATUS_MARKS.get(o.status, "?")
        line = (
            f"[{mark}] {o.status.value:<9} {o.sell_amount:.4f} {o.sell_token} -> "
            f"{o.buy_token} | {time_ago(o.timestamp, now_ms)}"
        )
        if o.tx_hash:
            line += f" | {explorer_url(o.tx_hash)}"
        lines.append(line)
    return "\n".join(lines)


def format_outcome(outcome: SettlementOutcome) -> str:
    if outcome.status == SettlementStatus.FILLED:
        text = f"Order filled: {outcome.intent_hash}"
        if outcome.reference:
            text += f"\n{explorer_url(outcome.reference)}"
        return text
    if outcome.status == SettlementStatus.FAILED:
        return f"Order failed: {outcome.message or 'unknown error'} ({outcome.intent_hash})"
    if outcome.status == SettlementStatus.EXPIRED:
        return f"Order still unsettled after polling: {outcome.intent_hash}"
    return f"Order submitted: {outcome.intent_hash}"


def format_activity(entry: ActivityEntry, registry: TokenRegistry) -> str:
    """Broadcast text for one settled swap."""
    intent = entry.intent
    sell_symbol = token_label(registry, intent.sell_token_type)
    buy_symbol = token_label(registry, intent.buy_token_type)
    sold = from_atomic(intent.sell_amount, registry.decimals_for(intent.sell_token_type))
    received = from_atomic(intent.quoted_buy_amount, registry.decimals_for(intent.buy_token_type))
    status = "FILLED" if entry.success else "FAILED"
    kind = "LIMIT" if intent.is_limit else "MARKET"

    lines = [
        f"Swap {status} ({kind})",
        f"Maker: {short_address(intent.maker)}",
        f"Sold: {format_amount(sold)} {sell_symbol}",
        f"Received: {format_amount(received)} {buy_symbol}",
    ]
    if entry.execution_rate_label:
        lines.append(f"Rate: {entry.execution_rate_label}")
    lines.append(explorer_url(entry.hash))
    return "\n".join(lines)


def format_recent_swaps(entries: list[ActivityEntry], registry: TokenRegistry, now_ms: int) -> str:
    if not entries:
        return "No recent swaps found."
    lines = ["=== Recent Swaps ==="]
    for entry in entries:
        intent = entry.intent
        sold = from_atomic(intent.sell_amount, registry.decimals_for(intent.sell_token_type))
        received = from_atomic(
            intent.quoted_buy_amount, registry.decimals_for(intent.buy_token_type)
        )
        mark = "+" if entry.success else "x"
        lines.append(
            f"[{mark}] {format_amount(sold)} {token_label(registry, intent.sell_token_type)} -> "
            f"{format_amount(received)} {token_label(registry, intent.buy_token_type)} "
            f"| {time_ago(entry.timestamp, now_ms)}"
        )
    return "\n".join(lines)
