"""In-process Ed25519 signing oracle backed by local key material."""

import hashlib
import logging
import os

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from intentswap.errors import SigningError
from intentswap.models.common import strip_hex_prefix

logger = logging.getLogger(__name__)

PRIVATE_KEY_ENV = "INTENTSWAP_PRIVATE_KEY"
ED25519_SCHEME = b"\x00"  # single-key authentication scheme byte


def derive_address(public_key: bytes) -> str:
    """Account address for a single Ed25519 key: sha3_256(pubkey || scheme)."""
    return "0x" + hashlib.sha3_256(public_key + ED25519_SCHEME).hexdigest()


class LocalKeySigner:
    """Signs with private keys held in memory, keyed by wallet handle."""

    def __init__(self, keys: dict[str, Ed25519PrivateKey] | None = None):
        self._keys: dict[str, Ed25519PrivateKey] = dict(keys or {})

    @classmethod
    def from_hex(cls, wallet_handle: str, private_key_hex: str) -> "LocalKeySigner":
        clean = strip_hex_prefix(private_key_hex.strip().removeprefix("ed25519-priv-"))
        try:
            key = Ed25519PrivateKey.from_private_bytes(bytes.fromhex(clean))
        except ValueError as e:
            raise SigningError(f"Invalid Ed25519 private key for {wallet_handle}") from e
        return cls({wallet_handle: key})

    @classmethod
    def from_env(cls, wallet_handle: str, env_var: str = PRIVATE_KEY_ENV) -> "LocalKeySigner":
        private_key_hex = os.environ.get(env_var, "")
        if not private_key_hex:
            raise SigningError(f"{env_var} not set")
        return cls.from_hex(wallet_handle, private_key_hex)

    def _key(self, wallet_handle: str) -> Ed25519PrivateKey:
        try:
            return self._keys[wallet_handle]
        except KeyError:
            raise SigningError(f"Unknown wallet handle: {wallet_handle}") from None

    def _public_bytes(self, wallet_handle: str) -> bytes:
        return self._key(wallet_handle).public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    def address(self, wallet_handle: str) -> str:
        return derive_address(self._public_bytes(wallet_handle))

    async def sign(self, wallet_handle: str, digest: bytes) -> bytes:
        logger.debug("Signing %d bytes with local key %s", len(digest), wallet_handle)
        return self._key(wallet_handle).sign(digest)

    async def get_public_key(self, wallet_handle: str) -> bytes:
        return self._public_bytes(wallet_handle)
