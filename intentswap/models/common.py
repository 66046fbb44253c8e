"""Time and hex helpers shared across models."""

import time


def unix_now() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


def unix_now_ms() -> int:
    return int(time.time() * 1000)


def strip_hex_prefix(value: str) -> str:
    return value[2:] if value[:2].lower() == "0x" else value


def normalize_hash(value: str) -> str:
    """Lowercase, 0x-prefixed form used for hash comparisons."""
    return "0x" + strip_hex_prefix(value.strip()).lower()
