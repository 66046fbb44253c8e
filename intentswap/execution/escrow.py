"""Escrow reconciliation: make sure the maker's escrow covers an intent.

The balance check and the top-up are separate chain round-trips with no lock
in between; a concurrent withdrawal can still leave the escrow short, in which
case the relayer rejects the fill.
"""

import logging

from intentswap.errors import DepositFailed, InsufficientFunds, SigningError
from intentswap.execution.chain_client import ChainClientError
from intentswap.execution.contract import IntentContract
from intentswap.models.swap import FundingResult
from intentswap.signing.oracle import WalletRef

logger = logging.getLogger(__name__)


class EscrowReconciler:
    def __init__(self, contract: IntentContract, auto_deposit: bool = True):
        self.contract = contract
        self.auto_deposit = auto_deposit

    async def recorded_balance(self, owner: str, token_type: str) -> int:
        """Escrow balance, or 0 when the view call fails."""
        try:
            return await self.contract.escrow_balance(owner, token_type)
        except (ChainClientError, KeyError, IndexError, ValueError) as e:
            logger.warning("Escrow balance unavailable for %s (%s), assuming 0", owner, e)
            return 0

    async def ensure_funded(
        self, wallet: WalletRef, token_type: str, required: int
    ) -> FundingResult:
        """Deposit exactly the shortfall, if any, and wait for confirmation."""
        balance = await self.recorded_balance(wallet.address, token_type)
        logger.info("Escrow balance: %d, needed: %d (%s)", balance, required, token_type)
        if balance >= required:
            return FundingResult(token_type=token_type, required=required, balance=balance)

        shortfall = required - balance
        if not self.auto_deposit:
            raise InsufficientFunds(token_type, required, balance)

        logger.info("Auto-deposit required: %d of %s", shortfall, token_type)
        tx_hash = await self.deposit(wallet, token_type, shortfall)
        return FundingResult(
            token_type=token_type,
            required=required,
            balance=balance,
            deposited=shortfall,
            tx_hash=tx_hash,
        )

    async def deposit(self, wallet: WalletRef, token_type: str, amount: int) -> str:
        """Move ``amount`` from the wallet into escrow. Returns the tx hash.

        Chain and signing failures are re-raised as DepositFailed carrying the
        underlying message.
        """
        try:
            receipt = await self.contract.execute(
                wallet, self.contract.deposit_call(token_type, amount)
            )
        except (ChainClientError, SigningError) as e:
            logger.error("Deposit of %d %s failed: %s", amount, token_type, e)
            raise DepositFailed(str(e)) from e

        if not receipt.success:
            logger.error("Deposit transaction %s aborted: %s", receipt.tx_hash, receipt.vm_status)
            raise DepositFailed(f"Deposit transaction {receipt.tx_hash} failed: {receipt.vm_status}")

        logger.info("Deposit confirmed: %s", receipt.tx_hash)
        return receipt.tx_hash

    async def withdraw(self, wallet: WalletRef, token_type: str, amount: int) -> str:
        """Move ``amount`` from escrow back to the wallet. Returns the tx hash."""
        logger.info("Withdrawing %d %s from escrow", amount, token_type)
        receipt = await self.contract.execute(
            wallet, self.contract.withdraw_call(token_type, amount)
        )
        if not receipt.success:
            raise ChainClientError(
                f"Withdraw transaction {receipt.tx_hash} failed: {receipt.vm_status}"
            )
        return receipt.tx_hash
