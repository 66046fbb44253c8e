"""Intent swap Move contract: escrow and nonce entry points."""

import logging

from intentswap.config.schema import INTENT_SWAP_ADDRESS
from intentswap.execution.chain_client import ChainClient, EntryFunction, TxReceipt
from intentswap.intent.builder import raw_token_type
from intentswap.signing.oracle import WalletRef
from intentswap.signing.orchestrator import SigningOrchestrator

logger = logging.getLogger(__name__)


def is_fungible_asset(token_type: str) -> bool:
    """FA tokens are identified by a metadata address, coins by a type tag."""
    return "::" not in token_type


class IntentContract:
    def __init__(
        self,
        chain: ChainClient,
        orchestrator: SigningOrchestrator,
        address: str = INTENT_SWAP_ADDRESS,
        confirmation_timeout: float = 30.0,
        confirmation_poll: float = 1.0,
    ):
        self.chain = chain
        self.orchestrator = orchestrator
        self.address = address
        self.confirmation_timeout = confirmation_timeout
        self.confirmation_poll = confirmation_poll

    def _fn(self, module: str, name: str) -> str:
        return f"{self.address}::{module}::{name}"

    async def escrow_balance(self, owner: str, token_type: str) -> int:
        """Escrowed amount in smallest units. Chain errors propagate."""
        token_type = raw_token_type(token_type)
        if is_fungible_asset(token_type):
            result = await self.chain.view(
                self._fn("escrow", "get_fa_balance"), [], [owner, token_type]
            )
        else:
            result = await self.chain.view(
                self._fn("escrow", "get_balance"), [token_type], [owner]
            )
        return int(result[0])

    async def get_nonce(self, owner: str) -> int:
        result = await self.chain.view(self._fn("swap", "get_nonce"), [], [self.address, owner])
        return int(result[0]) if result else 0

    def deposit_call(self, token_type: str, amount: int) -> EntryFunction:
        return self._escrow_transfer("deposit", raw_token_type(token_type), amount)

    def withdraw_call(self, token_type: str, amount: int) -> EntryFunction:
        return self._escrow_transfer("withdraw", raw_token_type(token_type), amount)

    def cancel_orders_call(self) -> EntryFunction:
        """Bumps the caller's nonce, invalidating every outstanding intent."""
        return EntryFunction(self._fn("swap", "cancel_orders"), [], [self.address])

    def _escrow_transfer(self, name: str, token_type: str, amount: int) -> EntryFunction:
        if is_fungible_asset(token_type):
            return EntryFunction(
                self._fn("escrow", f"{name}_fa"), [], [self.address, amount, token_type]
            )
        return EntryFunction(self._fn("escrow", name), [token_type], [amount])

    async def execute(self, wallet: WalletRef, call: EntryFunction) -> TxReceipt:
        """Build, sign, submit and confirm an entry function call."""
        txn = await self.chain.build_transaction(wallet.address, call)
        signing_message = await self.chain.get_signing_message(txn)
        authenticator = await self.orchestrator.sign_transaction(wallet.handle, signing_message)
        tx_hash = await self.chain.submit(txn, authenticator)
        return await self.chain.wait_for_confirmation(
            tx_hash, timeout=self.confirmation_timeout, poll_interval=self.confirmation_poll
        )
