"""Best-effort delivery of settlement notifications."""

import logging
from typing import Protocol

import httpx

from intentswap.models.order import SettlementOutcome, SettlementStatus
from intentswap.reporting.formatters import format_outcome

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, recipient: str, message: str) -> None: ...


class LogNotifier:
    """Writes notifications to the log. Used when no webhook is configured."""

    async def send(self, recipient: str, message: str) -> None:
        logger.info("Notify %s: %s", recipient or "-", message)


class WebhookNotifier:
    def __init__(self, url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, recipient: str, message: str) -> None:
        resp = await self._client.post(self.url, json={"recipient": recipient, "text": message})
        resp.raise_for_status()

    async def aclose(self) -> None:
        await self._client.aclose()


async def deliver(notifier: Notifier, recipient: str, message: str) -> bool:
    """Send and swallow failures. Returns whether the send succeeded."""
    try:
        await notifier.send(recipient, message)
        return True
    except Exception as e:
        logger.error("Failed to notify %s: %s", recipient, e)
        return False


def settlement_message(outcome: SettlementOutcome) -> str | None:
    """Notification text for a terminal outcome; None when nothing is sent.

    A local polling timeout is not reported to the user.
    """
    if outcome.status in (SettlementStatus.EXPIRED, SettlementStatus.SUBMITTED):
        return None
    return format_outcome(outcome)
