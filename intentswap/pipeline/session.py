"""Per-user swap context."""

import asyncio
import logging
from dataclasses import dataclass, field

from intentswap.models.swap import SwapQuote
from intentswap.signing.oracle import WalletRef

logger = logging.getLogger(__name__)


@dataclass
class SwapSession:
    """Explicit per-user state: wallet, quote awaiting confirmation, live trackers."""

    wallet: WalletRef
    recipient: str = ""  # notification target
    pending_quote: SwapQuote | None = None
    tracking: dict[str, asyncio.Task] = field(default_factory=dict)

    def is_tracking(self, intent_hash: str) -> bool:
        task = self.tracking.get(intent_hash)
        return task is not None and not task.done()

    def track(self, intent_hash: str, task: asyncio.Task) -> None:
        self.tracking[intent_hash] = task
        task.add_done_callback(lambda _t: self._forget(intent_hash, _t))

    def _forget(self, intent_hash: str, task: asyncio.Task) -> None:
        if self.tracking.get(intent_hash) is task:
            del self.tracking[intent_hash]
            logger.debug("Stopped tracking %s", intent_hash)
