"""Relayer API client: intent submission and order/activity feeds."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from intentswap.errors import RelayerRejected
from intentswap.intent.builder import raw_token_type
from intentswap.models.intent import SignedIntent
from intentswap.models.relayer import ActivityEntry, PendingOrder

logger = logging.getLogger(__name__)

RELAYER_BASE_URL = "http://localhost:3001"


class RelayerClientError(Exception):
    """Raised when the relayer is unreachable, answers with an HTTP error, or sends a malformed body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def submission_payload(signed: SignedIntent) -> dict[str, Any]:
    """POST /intents body. Integers travel as decimal strings."""
    intent = signed.intent
    return {
        "intent": {
            "maker": intent.maker,
            "nonce": str(intent.nonce),
            "sell_token_type": raw_token_type(intent.sell_token),
            "buy_token_type": raw_token_type(intent.buy_token),
            "sell_token": intent.sell_token.encode("utf-8").hex(),
            "buy_token": intent.buy_token.encode("utf-8").hex(),
            "sell_amount": str(int(intent.sell_amount)),
            "start_time": str(intent.start_time),
            "end_time": str(intent.end_time),
            "start_buy_amount": str(int(intent.start_buy_amount)),
            "end_buy_amount": str(int(intent.end_buy_amount)),
        },
        "signature": "0x" + signed.signature.hex(),
        "publicKey": "0x" + signed.public_key.hex(),
        "signingNonce": signed.signing_nonce,
        "intentHash": signed.intent_hash_hex,
    }


def _error_reason(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return None


class RelayerClient:
    def __init__(
        self,
        base_url: str = RELAYER_BASE_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, method: str, endpoint: str, data: dict | None = None) -> httpx.Response:
        url = f"{self.base_url}{endpoint}"
        try:
            return await self._client.request(method, url, json=data)
        except httpx.RequestError as e:
            logger.error("Relayer request failed: %s %s -> %s", method, endpoint, e)
            raise RelayerClientError(f"Request failed: {e}") from e

    async def _get_json(self, endpoint: str) -> Any:
        resp = await self._request("GET", endpoint)
        if resp.status_code >= 400:
            logger.error("Relayer %d: GET %s -> %s", resp.status_code, endpoint, resp.text)
            raise RelayerClientError(f"HTTP {resp.status_code}: {resp.text}", resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            logger.error("Relayer sent a non-JSON body: GET %s -> %.200s", endpoint, resp.text)
            raise RelayerClientError(f"Invalid JSON from {endpoint}: {e}", resp.status_code) from e

    async def _get_orders_list(self, endpoint: str) -> list:
        data = await self._get_json(endpoint)
        if not isinstance(data, dict):
            return []
        raw = data.get("orders") or []
        if not isinstance(raw, list):
            logger.error("Relayer %s: orders is %s, expected a list", endpoint, type(raw).__name__)
            raise RelayerClientError(f"Malformed {endpoint} response: orders is not a list")
        return raw

    async def get_activity(self) -> list[ActivityEntry]:
        """Settled (filled or failed) intents, newest first as served."""
        return _parse_entries(await self._get_orders_list("/activity"), ActivityEntry)

    async def get_orders(self) -> list[PendingOrder]:
        """Intents accepted by the relayer and not yet settled."""
        return _parse_entries(await self._get_orders_list("/orders"), PendingOrder)

    async def get_prices(self) -> dict[str, float]:
        """USD prices keyed by token type (or symbol)."""
        data = await self._get_json("/prices")
        if not isinstance(data, dict):
            return {}
        prices: dict[str, float] = {}
        for key, value in data.items():
            try:
                prices[key] = float(value)
            except (TypeError, ValueError):
                logger.warning("Skipping non-numeric price for %s: %r", key, value)
        return prices

    async def submit_intent(self, signed: SignedIntent) -> dict:
        """Submit a signed intent.

        Raises RelayerRejected with the relayer's own reason when it answers
        with an ``{error}`` payload, RelayerClientError on transport failures
        or HTTP errors without a reason.
        """
        logger.info("Submitting intent %s to relayer", signed.intent_hash_hex)
        resp = await self._request("POST", "/intents", submission_payload(signed))
        reason = _error_reason(resp)
        if reason is not None:
            logger.warning("Relayer rejected %s: %s", signed.intent_hash_hex, reason)
            raise RelayerRejected(reason)
        if resp.status_code >= 400:
            logger.error("Relayer %d: POST /intents -> %s", resp.status_code, resp.text)
            raise RelayerClientError(f"HTTP {resp.status_code}: {resp.text}", resp.status_code)
        try:
            body = resp.json()
        except ValueError:
            body = {}
        return body if isinstance(body, dict) else {}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RelayerClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


def _parse_entries(raw: list, model: type) -> list:
    entries = []
    for item in raw:
        try:
            entries.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping malformed %s entry: %s", model.__name__, e.errors()[:1])
    return entries
