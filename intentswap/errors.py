"""Error taxonomy for the swap pipeline.

Fatal errors abort the current swap attempt and carry a human-readable message.
Polling timeouts are not errors; see ``SettlementStatus.EXPIRED``.
"""


class SwapError(Exception):
    """Base class for all swap pipeline failures."""


class EncodingError(SwapError):
    """Intent fields could not be encoded."""


class InvalidAddress(EncodingError):
    pass


class IntegerOverflow(EncodingError):
    pass


class InvalidIntent(EncodingError):
    """Intent fields violate an ordering or positivity invariant."""


class SigningError(SwapError):
    """Signing oracle failure. Not retried; the caller may restart the pipeline."""


class InvalidPublicKey(SigningError):
    pass


class InsufficientFunds(SwapError):
    """Escrow shortfall and auto-deposit is disabled."""

    def __init__(self, token_type: str, required: int, available: int):
        super().__init__(
            f"Insufficient escrow balance for {token_type}: "
            f"have {available}, need {required}"
        )
        self.token_type = token_type
        self.required = required
        self.available = available


class DepositFailed(SwapError):
    """Escrow top-up could not be completed. Message is the underlying error."""


class RelayerRejected(SwapError):
    """Relayer refused the intent; ``reason`` is the relayer's own message."""

    def __init__(self, reason: str):
        super().__init__(f"Relayer rejected: {reason}")
        self.reason = reason


class TransientPollError(SwapError):
    """A single poll cycle failed. Recovered by the polling loop."""
