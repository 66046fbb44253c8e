"""Intent content hashing."""

import hashlib

from intentswap.intent.encoding import encode_intent
from intentswap.models.intent import Intent


def hash_bytes(encoded: bytes) -> bytes:
    """SHA3-256 of the canonical encoding. No truncation."""
    return hashlib.sha3_256(encoded).digest()


def hash_intent(intent: Intent) -> bytes:
    return hash_bytes(encode_intent(intent))


def intent_hash_hex(intent: Intent) -> str:
    """0x-prefixed identifier used for dedup, status lookup and on-chain reference."""
    return "0x" + hash_intent(intent).hex()
