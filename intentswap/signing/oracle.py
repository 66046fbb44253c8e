"""Signing oracle interface and backend selection."""

from dataclasses import dataclass
from typing import Protocol

from intentswap.config.schema import EngineConfig, SignerBackend
from intentswap.signing.custody_client import CustodySigner
from intentswap.signing.local_signer import LocalKeySigner


class SigningOracle(Protocol):
    """Opaque signing capability. Failures propagate as exceptions."""

    async def sign(self, wallet_handle: str, digest: bytes) -> bytes: ...

    async def get_public_key(self, wallet_handle: str) -> bytes: ...


@dataclass(frozen=True)
class WalletRef:
    handle: str  # oracle-side identifier of the key
    address: str  # on-chain account address


def build_signing_oracle(config: EngineConfig) -> SigningOracle:
    if config.signing.backend == SignerBackend.CUSTODY:
        return CustodySigner(base_url=config.signing.custody_base_url)
    return LocalKeySigner.from_env(config.wallet.handle)


async def resolve_wallet(config: EngineConfig, oracle: SigningOracle) -> WalletRef:
    """Wallet reference from config, deriving the address from the backend if unset."""
    handle = config.wallet.handle
    address = config.wallet.address
    if not address:
        if isinstance(oracle, LocalKeySigner):
            address = oracle.address(handle)
        elif isinstance(oracle, CustodySigner):
            address = await oracle.get_address(handle)
    if not address:
        raise ValueError(f"No address configured for wallet {handle}")
    return WalletRef(handle=handle, address=address)
