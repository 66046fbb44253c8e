"""Swap pipeline: quote -> escrow top-up -> intent -> sign -> submit -> track."""

import logging
from collections.abc import Callable

from intentswap.config.schema import EngineConfig
from intentswap.config.tokens import TokenRegistry, to_atomic
from intentswap.errors import DepositFailed, SwapError
from intentswap.execution.chain_client import ChainClient, ChainClientError
from intentswap.execution.contract import IntentContract
from intentswap.execution.escrow import EscrowReconciler
from intentswap.execution.notifier import LogNotifier, Notifier, WebhookNotifier
from intentswap.execution.settlement_tracker import SettlementTracker
from intentswap.ingest.quotes import QuoteService
from intentswap.ingest.relayer_client import RelayerClient
from intentswap.intent.builder import build_intent
from intentswap.models.common import unix_now
from intentswap.models.order import Order
from intentswap.models.swap import SwapQuote, SwapResult
from intentswap.pipeline.session import SwapSession
from intentswap.signing.custody_client import CustodySigner
from intentswap.signing.oracle import SigningOracle
from intentswap.signing.orchestrator import SigningOrchestrator

logger = logging.getLogger(__name__)


class SwapPipeline:
    def __init__(
        self,
        config: EngineConfig,
        registry: TokenRegistry,
        quotes: QuoteService,
        contract: IntentContract,
        escrow: EscrowReconciler,
        orchestrator: SigningOrchestrator,
        relayer: RelayerClient,
        tracker: SettlementTracker,
        now: Callable[[], int] = unix_now,
    ):
        self.config = config
        self.registry = registry
        self.quotes = quotes
        self.contract = contract
        self.escrow = escrow
        self.orchestrator = orchestrator
        self.relayer = relayer
        self.tracker = tracker
        self._now = now

    @classmethod
    def from_config(cls, config: EngineConfig, oracle: SigningOracle) -> "SwapPipeline":
        registry = TokenRegistry(config.tokens)
        relayer = RelayerClient(config.relayer.base_url, timeout=config.relayer.timeout_seconds)
        chain = ChainClient(
            config.chain.fullnode_url,
            timeout=config.chain.request_timeout_seconds,
            max_gas_amount=config.chain.max_gas_amount,
            expiration_seconds=config.chain.tx_expiration_seconds,
        )
        orchestrator = SigningOrchestrator(oracle, config.signing.envelope_prefix)
        contract = IntentContract(
            chain,
            orchestrator,
            config.chain.contract_address,
            confirmation_timeout=config.chain.confirmation_timeout_seconds,
            confirmation_poll=config.chain.confirmation_poll_seconds,
        )
        notifier: Notifier | None = None
        if config.alerts.enabled:
            notifier = (
                WebhookNotifier(config.alerts.webhook_url)
                if config.alerts.webhook_url
                else LogNotifier()
            )
        tracker = SettlementTracker(
            relayer,
            registry,
            poll_interval=config.tracking.poll_interval_seconds,
            timeout=config.tracking.timeout_seconds,
            recency_window=config.tracking.effective_recency_window,
            history_limit=config.tracking.order_history_limit,
            notifier=notifier,
        )
        return cls(
            config=config,
            registry=registry,
            quotes=QuoteService(relayer, registry),
            contract=contract,
            escrow=EscrowReconciler(contract, auto_deposit=config.swap.auto_deposit),
            orchestrator=orchestrator,
            relayer=relayer,
            tracker=tracker,
        )

    async def quote(
        self, session: SwapSession, sell_symbol: str, buy_symbol: str, amount: float
    ) -> SwapQuote | None:
        """Price a swap and keep it on the session until confirmed."""
        quote = await self.quotes.get_quote(sell_symbol, buy_symbol, amount)
        session.pending_quote = quote
        return quote

    async def execute_swap(
        self, session: SwapSession, quote: SwapQuote | None = None
    ) -> SwapResult:
        """Run a swap end to end up to relayer acceptance.

        Settlement tracking continues in a background task registered on the
        session under the intent hash.
        """
        quote = quote or session.pending_quote
        if quote is None:
            return SwapResult(success=False, message="No pending quote. Request a quote first.")

        wallet = session.wallet
        intent_hash: str | None = None
        try:
            sell_atomic = to_atomic(quote.sell_amount, quote.sell_token.decimals)

            # 1. Escrow
            await self.escrow.ensure_funded(wallet, quote.sell_token.type, sell_atomic)

            # 2. Intent
            nonce = await self._current_nonce(wallet.address)
            intent = build_intent(
                quote,
                maker=wallet.address,
                nonce=nonce,
                now=self._now(),
                validity_window=self.config.swap.validity_window_seconds,
                slippage_bps=self.config.swap.slippage_bps,
            )

            # 3. Sign
            signed = await self.orchestrator.sign_intent(intent, wallet.handle)
            intent_hash = signed.intent_hash_hex
            logger.info("Intent %s built with nonce %d", intent_hash, nonce)

            # 4. Submit
            await self.relayer.submit_intent(signed)

        except DepositFailed as e:
            return SwapResult(
                success=False,
                message=(
                    f"Deposit failed: {e}. Please ensure you have enough "
                    f"{quote.sell_token.symbol} in your wallet."
                ),
            )
        except SwapError as e:
            logger.warning("Swap aborted: %s", e)
            return SwapResult(success=False, message=str(e), intent_hash=intent_hash)
        except Exception as e:
            logger.exception("Swap execution failed")
            return SwapResult(
                success=False, message=str(e) or "Swap failed", intent_hash=intent_hash
            )

        # 5. Track
        session.pending_quote = None
        if session.is_tracking(intent_hash):
            logger.info("Already tracking %s", intent_hash)
        else:
            session.track(
                intent_hash,
                self.tracker.dispatch(intent_hash, wallet.address, session.recipient),
            )
        return SwapResult(success=True, message="Order submitted!", intent_hash=intent_hash)

    async def _current_nonce(self, owner: str) -> int:
        try:
            return await self.contract.get_nonce(owner)
        except (ChainClientError, KeyError, IndexError, ValueError) as e:
            logger.warning("Failed to fetch nonce for %s (%s), using 0", owner, e)
            return 0

    async def deposit(self, session: SwapSession, symbol: str, amount: float) -> SwapResult:
        token = self.registry.by_symbol(symbol)
        if token is None:
            return SwapResult(success=False, message=f"Invalid token symbol: {symbol}")
        try:
            tx_hash = await self.escrow.deposit(
                session.wallet, token.type, to_atomic(amount, token.decimals)
            )
        except SwapError as e:
            return SwapResult(success=False, message=f"Deposit failed: {e}")
        except Exception as e:
            logger.exception("Deposit failed")
            return SwapResult(success=False, message=f"Deposit failed: {e}")
        return SwapResult(
            success=True,
            message=f"Deposit confirmed: {amount} {token.symbol} moved from wallet to escrow.",
            tx_hash=tx_hash,
        )

    async def withdraw(self, session: SwapSession, symbol: str, amount: float) -> SwapResult:
        token = self.registry.by_symbol(symbol)
        if token is None:
            return SwapResult(success=False, message=f"Invalid token symbol: {symbol}")
        try:
            tx_hash = await self.escrow.withdraw(
                session.wallet, token.type, to_atomic(amount, token.decimals)
            )
        except Exception as e:
            logger.exception("Withdrawal failed")
            return SwapResult(success=False, message=f"Withdrawal failed: {e}")
        return SwapResult(
            success=True,
            message=f"Withdrawal confirmed: {amount} {token.symbol} moved from escrow to wallet.",
            tx_hash=tx_hash,
        )

    async def cancel_orders(self, session: SwapSession) -> SwapResult:
        """Invalidate every outstanding intent by bumping the on-chain nonce."""
        logger.info("Cancelling orders for %s", session.wallet.address)
        try:
            receipt = await self.contract.execute(
                session.wallet, self.contract.cancel_orders_call()
            )
        except Exception as e:
            logger.exception("Cancel failed")
            return SwapResult(success=False, message=f"Cancel failed: {e}")
        if not receipt.success:
            return SwapResult(
                success=False,
                message=f"Cancel failed: {receipt.vm_status}",
                tx_hash=receipt.tx_hash,
            )
        return SwapResult(
            success=True,
            message="Orders cancelled! Your nonce has been incremented.",
            tx_hash=receipt.tx_hash,
        )

    async def orders(self, session: SwapSession) -> list[Order]:
        return await self.tracker.get_orders(session.wallet.address)

    async def aclose(self) -> None:
        await self.relayer.aclose()
        await self.contract.chain.aclose()
        notifier = self.tracker.notifier
        if isinstance(notifier, WebhookNotifier):
            await notifier.aclose()
        if isinstance(self.orchestrator.oracle, CustodySigner):
            await self.orchestrator.oracle.aclose()
