"""Canonical byte encoding of swap intents.

Layout (no length prefixes, field order fixed):

    DOMAIN_SEPARATOR | maker[32] | nonce u64le | sell_token utf8 | buy_token utf8 |
    sell_amount u64le | start_buy u64le | end_buy u64le | start_time u64le | end_time u64le

The token identifiers are not length-prefixed; the fixed-width integers that
follow them frame the record. This matches the on-chain verifier byte for byte,
so the layout must not change.
"""

import struct

from intentswap.errors import IntegerOverflow, InvalidAddress
from intentswap.models.common import strip_hex_prefix
from intentswap.models.intent import Intent

DOMAIN_SEPARATOR = b"MOVE_INTENT_SWAP_V1"
ADDRESS_LENGTH = 32
MIN_ADDRESS_LENGTH = 20
U64_MAX = 2**64 - 1


def encode_address(address: str) -> bytes:
    """Parse a hex address and left-pad it with zero bytes to 32 bytes.

    Accepts 20 to 32 byte addresses, with or without ``0x``. Odd-length hex
    (e.g. ``0x1``) gets an implicit leading zero nibble.
    """
    clean = strip_hex_prefix(address.strip())
    if len(clean) % 2:
        clean = "0" + clean
    try:
        raw = bytes.fromhex(clean)
    except ValueError as e:
        raise InvalidAddress(f"Address is not valid hex: {address!r}") from e
    if not MIN_ADDRESS_LENGTH <= len(raw) <= ADDRESS_LENGTH:
        raise InvalidAddress(
            f"Address must be {MIN_ADDRESS_LENGTH}-{ADDRESS_LENGTH} bytes, "
            f"got {len(raw)}: {address!r}"
        )
    return raw.rjust(ADDRESS_LENGTH, b"\x00")


def encode_u64(value: int | float, field: str = "value") -> bytes:
    """Unsigned 64-bit little-endian, fractional part truncated toward zero."""
    try:
        n = int(value)
    except (OverflowError, ValueError) as e:
        raise IntegerOverflow(f"{field}={value} does not fit in u64") from e
    if n < 0 or n > U64_MAX:
        raise IntegerOverflow(f"{field}={value} does not fit in u64")
    return struct.pack("<Q", n)


def encode_intent(intent: Intent) -> bytes:
    parts = [
        DOMAIN_SEPARATOR,
        encode_address(intent.maker),
        encode_u64(intent.nonce, "nonce"),
        intent.sell_token.encode("utf-8"),
        intent.buy_token.encode("utf-8"),
        encode_u64(intent.sell_amount, "sell_amount"),
        encode_u64(intent.start_buy_amount, "start_buy_amount"),
        encode_u64(intent.end_buy_amount, "end_buy_amount"),
        encode_u64(intent.start_time, "start_time"),
        encode_u64(intent.end_time, "end_time"),
    ]
    return b"".join(parts)
