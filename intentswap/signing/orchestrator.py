"""Signing orchestrator: envelopes, oracle delegation and authenticators.

Intent signing wraps the intent hash in a short text envelope that names the
network and the nonce, hashes the envelope with SHA-256 and hands that fixed
32-byte digest to the oracle. Transactions are signed over the chain's signing
message as returned by the fullnode.

Oracle failures are never retried here; they surface as ``SigningError`` and
the caller decides whether to re-drive the whole pipeline.
"""

import hashlib
import logging

from intentswap.errors import InvalidPublicKey, SigningError
from intentswap.intent.hashing import hash_intent
from intentswap.models.intent import Authenticator, Intent, SignedIntent
from intentswap.signing.oracle import SigningOracle

logger = logging.getLogger(__name__)

PUBLIC_KEY_LENGTH = 32
PREFIXED_PUBLIC_KEY_LENGTH = 33
SIGNATURE_LENGTH = 64


def build_envelope(intent_hash: bytes, nonce: int, prefix: str = "APTOS") -> str:
    return f"{prefix}\nmessage: {intent_hash.hex()}\nnonce: {nonce}"


def envelope_digest(envelope: str) -> bytes:
    return hashlib.sha256(envelope.encode("utf-8")).digest()


def signing_nonce_hex(nonce: int) -> str:
    """The decimal nonce string's UTF-8 bytes, hex-encoded, as the relayer expects."""
    return "0x" + str(nonce).encode("utf-8").hex()


def normalize_public_key(raw: bytes) -> bytes:
    """Drop the one-byte format prefix some custody backends prepend."""
    if len(raw) == PREFIXED_PUBLIC_KEY_LENGTH:
        return raw[1:]
    if len(raw) == PUBLIC_KEY_LENGTH:
        return raw
    raise InvalidPublicKey(
        f"Invalid public key length: {len(raw)}. Expected {PUBLIC_KEY_LENGTH}."
    )


class SigningOrchestrator:
    def __init__(self, oracle: SigningOracle, envelope_prefix: str = "APTOS"):
        self.oracle = oracle
        self.envelope_prefix = envelope_prefix

    async def authenticate(self, wallet_handle: str, message: bytes) -> Authenticator:
        """Sign ``message`` and pair the signature with the wallet's public key."""
        try:
            signature = await self.oracle.sign(wallet_handle, message)
            raw_public_key = await self.oracle.get_public_key(wallet_handle)
        except SigningError:
            raise
        except Exception as e:
            logger.error("Signing oracle failed for wallet %s: %s", wallet_handle, e)
            raise SigningError(f"Signing failed: {e}") from e

        public_key = normalize_public_key(bytes(raw_public_key))
        if len(signature) != SIGNATURE_LENGTH:
            raise SigningError(
                f"Invalid signature length: {len(signature)}. Expected {SIGNATURE_LENGTH}."
            )
        return Authenticator(public_key=public_key, signature=bytes(signature))

    async def sign_intent(self, intent: Intent, wallet_handle: str) -> SignedIntent:
        intent_hash = hash_intent(intent)
        envelope = build_envelope(intent_hash, intent.nonce, self.envelope_prefix)
        digest = envelope_digest(envelope)
        logger.info(
            "Signing intent 0x%s (nonce %d) with wallet %s",
            intent_hash.hex(), intent.nonce, wallet_handle,
        )

        auth = await self.authenticate(wallet_handle, digest)
        return SignedIntent(
            intent=intent,
            intent_hash=intent_hash,
            signature=auth.signature,
            public_key=auth.public_key,
            signing_nonce=signing_nonce_hex(intent.nonce),
        )

    async def sign_transaction(self, wallet_handle: str, signing_message: bytes) -> Authenticator:
        logger.debug(
            "Signing transaction message 0x%s... with wallet %s",
            signing_message[:12].hex(), wallet_handle,
        )
        return await self.authenticate(wallet_handle, signing_message)
