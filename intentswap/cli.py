"""CLI entry point for intent swaps."""

import argparse
import asyncio
import logging
import sys

from intentswap.config.loader import (
    config_hash,
    get_config_value,
    load_config,
    save_config,
    set_config_value,
)
from intentswap.config.schema import EngineConfig
from intentswap.config.tokens import TokenRegistry
from intentswap.errors import SwapError
from intentswap.execution.notifier import LogNotifier, Notifier, WebhookNotifier
from intentswap.ingest.quotes import QuoteService
from intentswap.ingest.relayer_client import RelayerClient
from intentswap.models.common import unix_now_ms
from intentswap.models.order import SettlementStatus
from intentswap.pipeline.session import SwapSession
from intentswap.pipeline.swap_pipeline import SwapPipeline
from intentswap.reporting.activity_monitor import ActivityMonitor
from intentswap.reporting.formatters import (
    format_orders,
    format_outcome,
    format_quote,
    format_recent_swaps,
)
from intentswap.signing.custody_client import CustodyClientError
from intentswap.signing.oracle import build_signing_oracle, resolve_wallet

DEFAULT_CONFIG = "intentswap.yaml"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="intentswap",
        description="Sign, submit and track token swap intents",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config YAML path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command")

    # quote / swap
    quote_p = sub.add_parser("quote", help="Price a swap")
    _add_swap_args(quote_p)
    swap_p = sub.add_parser("swap", help="Quote, sign and submit a swap intent")
    _add_swap_args(swap_p)
    swap_p.add_argument(
        "--no-wait", action="store_true", help="Return after relayer acceptance"
    )

    # orders / status
    sub.add_parser("orders", help="List recent orders for the wallet")
    status_p = sub.add_parser("status", help="Show one order by intent hash")
    status_p.add_argument("intent_hash")

    # escrow
    for name, help_text in (
        ("deposit", "Move tokens from wallet to escrow"),
        ("withdraw", "Move tokens from escrow to wallet"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("token")
        p.add_argument("amount", type=float)
    sub.add_parser("cancel", help="Cancel all outstanding intents")

    # activity feed
    watch_p = sub.add_parser("watch", help="Stream newly settled swaps")
    watch_p.add_argument("--recipient", default="", help="Notification target")
    watch_p.add_argument("--polls", type=int, default=None, help="Stop after N polls")
    activity_p = sub.add_parser("activity", help="List recent swaps on the relayer")
    activity_p.add_argument("--limit", type=int, default=5)

    # config show / config set
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    set_p = config_sub.add_parser("set", help="Set a config value")
    set_p.add_argument("keyvalue", help="key=value to set")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    if args.command == "config":
        return _cmd_config(config, args)
    handlers = {
        "quote": _cmd_quote,
        "swap": _cmd_swap,
        "orders": _cmd_orders,
        "status": _cmd_status,
        "deposit": _cmd_deposit,
        "withdraw": _cmd_withdraw,
        "cancel": _cmd_cancel,
        "watch": _cmd_watch,
        "activity": _cmd_activity,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    try:
        return asyncio.run(handler(config, args))
    except (SwapError, CustodyClientError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0


def _add_swap_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("sell", help="Token symbol to sell")
    p.add_argument("buy", help="Token symbol to buy")
    p.add_argument("amount", type=float, help="Amount to sell")


async def _open(config: EngineConfig) -> tuple[SwapPipeline, SwapSession]:
    oracle = build_signing_oracle(config)
    wallet = await resolve_wallet(config, oracle)
    pipeline = SwapPipeline.from_config(config, oracle)
    return pipeline, SwapSession(wallet=wallet, recipient=config.alerts.recipient)


async def _cmd_quote(config: EngineConfig, args) -> int:
    registry = TokenRegistry(config.tokens)
    async with RelayerClient(config.relayer.base_url, config.relayer.timeout_seconds) as relayer:
        quote = await QuoteService(relayer, registry).get_quote(args.sell, args.buy, args.amount)
    if quote is None:
        print(f"No quote for {args.sell} -> {args.buy}. Tokens: {', '.join(registry.symbols())}")
        return 1
    print(format_quote(quote))
    return 0


async def _cmd_swap(config: EngineConfig, args) -> int:
    pipeline, session = await _open(config)
    try:
        quote = await pipeline.quote(session, args.sell, args.buy, args.amount)
        if quote is None:
            print(f"No quote for {args.sell} -> {args.buy}")
            return 1
        print(format_quote(quote))

        result = await pipeline.execute_swap(session)
        print(result.message)
        if not result.success:
            return 1
        print(f"Intent hash: {result.intent_hash}")

        task = session.tracking.get(result.intent_hash)
        if args.no_wait or task is None:
            return 0
        print("Waiting for settlement...")
        outcome = await task
        print(format_outcome(outcome))
        return 1 if outcome.status == SettlementStatus.FAILED else 0
    finally:
        for pending in list(session.tracking.values()):
            pending.cancel()
        await pipeline.aclose()


async def _cmd_orders(config: EngineConfig, args) -> int:
    pipeline, session = await _open(config)
    try:
        orders = await pipeline.orders(session)
    finally:
        await pipeline.aclose()
    print(format_orders(orders, unix_now_ms()))
    return 0


async def _cmd_status(config: EngineConfig, args) -> int:
    pipeline, session = await _open(config)
    try:
        order = await pipeline.tracker.order_status(args.intent_hash, session.wallet.address)
    finally:
        await pipeline.aclose()
    if order is None:
        print(f"No order found for {args.intent_hash}")
        return 1
    print(format_orders([order], unix_now_ms()))
    return 0


async def _cmd_deposit(config: EngineConfig, args) -> int:
    pipeline, session = await _open(config)
    try:
        result = await pipeline.deposit(session, args.token, args.amount)
    finally:
        await pipeline.aclose()
    return _report(result)


async def _cmd_withdraw(config: EngineConfig, args) -> int:
    pipeline, session = await _open(config)
    try:
        result = await pipeline.withdraw(session, args.token, args.amount)
    finally:
        await pipeline.aclose()
    return _report(result)


async def _cmd_cancel(config: EngineConfig, args) -> int:
    pipeline, session = await _open(config)
    try:
        result = await pipeline.cancel_orders(session)
    finally:
        await pipeline.aclose()
    return _report(result)


def _report(result) -> int:
    print(result.message)
    if result.tx_hash:
        print(f"Transaction: {result.tx_hash}")
    return 0 if result.success else 1


async def _cmd_watch(config: EngineConfig, args) -> int:
    notifier: Notifier = (
        WebhookNotifier(config.alerts.webhook_url) if config.alerts.webhook_url else LogNotifier()
    )
    async with RelayerClient(config.relayer.base_url, config.relayer.timeout_seconds) as relayer:
        monitor = ActivityMonitor(
            relayer,
            TokenRegistry(config.tokens),
            notifier,
            poll_interval=config.monitor.poll_interval_seconds,
            max_age_minutes=config.monitor.max_age_minutes,
        )
        monitor.subscribe(args.recipient or config.alerts.recipient or "console")
        try:
            await monitor.run(max_polls=args.polls)
        finally:
            if isinstance(notifier, WebhookNotifier):
                await notifier.aclose()
    return 0


async def _cmd_activity(config: EngineConfig, args) -> int:
    registry = TokenRegistry(config.tokens)
    async with RelayerClient(config.relayer.base_url, config.relayer.timeout_seconds) as relayer:
        monitor = ActivityMonitor(relayer, registry, LogNotifier())
        entries = await monitor.recent_swaps(args.limit)
    print(format_recent_swaps(entries, registry, unix_now_ms()))
    return 0


def _cmd_config(config: EngineConfig, args) -> int:
    if args.config_command == "show":
        print(config.model_dump_json(indent=2))
        print(f"# hash: {config_hash(config)}")
        return 0
    elif args.config_command == "set":
        kv = args.keyvalue
        if "=" not in kv:
            print("Error: use key=value format")
            return 1
        key, value = (s.strip() for s in kv.split("=", 1))
        try:
            new_config = set_config_value(config, key, value)
        except (KeyError, ValueError) as e:
            print(f"Error: {e}")
            return 1
        save_config(new_config, args.config)
        print(f"Set {key} = {get_config_value(new_config, key)}")
        return 0
    else:
        print("Use: config show | config set key=value")
        return 1


if __name__ == "__main__":
    sys.exit(main())
