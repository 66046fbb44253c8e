"""Fullnode REST client: view calls, transaction build, submit and confirm.

Targets the Aptos-compatible JSON API exposed by Movement fullnodes. Integers
outside JS safe range travel as decimal strings, so every u64 argument and
transaction field is rendered with ``str``.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from intentswap.models.common import strip_hex_prefix
from intentswap.models.intent import Authenticator

logger = logging.getLogger(__name__)

FULLNODE_URL = "https://testnet.movementnetwork.xyz/v1"
DEFAULT_GAS_UNIT_PRICE = 100


class ChainClientError(Exception):
    """Raised when the fullnode is unreachable, answers with an HTTP error, or sends a malformed body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class EntryFunction:
    function: str  # "{address}::{module}::{name}"
    type_arguments: list[str] = field(default_factory=list)
    arguments: list[Any] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "entry_function_payload",
            "function": self.function,
            "type_arguments": list(self.type_arguments),
            "arguments": [_json_arg(a) for a in self.arguments],
        }


@dataclass(frozen=True)
class UnsignedTransaction:
    sender: str
    sequence_number: int
    max_gas_amount: int
    gas_unit_price: int
    expiration_timestamp_secs: int
    payload: EntryFunction

    def to_json(self) -> dict[str, Any]:
        return {
            "sender": self.sender,
            "sequence_number": str(self.sequence_number),
            "max_gas_amount": str(self.max_gas_amount),
            "gas_unit_price": str(self.gas_unit_price),
            "expiration_timestamp_secs": str(self.expiration_timestamp_secs),
            "payload": self.payload.to_payload(),
        }


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    success: bool
    vm_status: str = ""


def _json_arg(value: Any) -> Any:
    # bool is an int subclass and must stay a JSON bool
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    return value


class ChainClient:
    def __init__(
        self,
        fullnode_url: str = FULLNODE_URL,
        timeout: float = 30.0,
        max_gas_amount: int = 200_000,
        expiration_seconds: int = 600,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = fullnode_url.rstrip("/")
        self.max_gas_amount = max_gas_amount
        self.expiration_seconds = expiration_seconds
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._clock = clock
        self._sleep = sleep

    async def _request(
        self, method: str, endpoint: str, data: Any = None, allow_404: bool = False
    ) -> httpx.Response:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = await self._client.request(method, url, json=data)
        except httpx.RequestError as e:
            logger.error("Fullnode request failed: %s %s -> %s", method, endpoint, e)
            raise ChainClientError(f"Request failed: {e}") from e

        if resp.status_code == 404 and allow_404:
            return resp
        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.error("Fullnode %d: %s %s -> %s", resp.status_code, method, endpoint, message)
            raise ChainClientError(f"HTTP {resp.status_code}: {message}", resp.status_code)
        return resp

    async def view(
        self, function: str, type_arguments: list[str] | None = None, arguments: list[Any] | None = None
    ) -> list[Any]:
        """Call a view function and return its decoded return values."""
        body = EntryFunction(function, type_arguments or [], arguments or []).to_payload()
        del body["type"]
        resp = await self._request("POST", "/view", body)
        result = _json(resp, "/view")
        if not isinstance(result, list):
            raise _malformed("/view", f"unexpected result for {function}: {result!r}")
        return result

    async def get_sequence_number(self, address: str) -> int:
        endpoint = f"/accounts/{address}"
        data = _json(await self._request("GET", endpoint), endpoint)
        try:
            return int(data["sequence_number"])
        except (KeyError, TypeError, ValueError) as e:
            raise _malformed(endpoint, f"no sequence_number ({e!r})") from e

    async def estimate_gas_price(self) -> int:
        data = _json(await self._request("GET", "/estimate_gas_price"), "/estimate_gas_price")
        if not isinstance(data, dict):
            raise _malformed("/estimate_gas_price", f"expected an object, got {data!r}")
        try:
            return int(data.get("gas_estimate", DEFAULT_GAS_UNIT_PRICE))
        except (TypeError, ValueError) as e:
            raise _malformed("/estimate_gas_price", f"bad gas_estimate ({e!r})") from e

    async def build_transaction(self, sender: str, payload: EntryFunction) -> UnsignedTransaction:
        sequence_number = await self.get_sequence_number(sender)
        gas_unit_price = await self.estimate_gas_price()
        return UnsignedTransaction(
            sender=sender,
            sequence_number=sequence_number,
            max_gas_amount=self.max_gas_amount,
            gas_unit_price=gas_unit_price,
            expiration_timestamp_secs=int(time.time()) + self.expiration_seconds,
            payload=payload,
        )

    async def get_signing_message(self, txn: UnsignedTransaction) -> bytes:
        """Bytes the sender must sign, as encoded by the fullnode."""
        endpoint = "/transactions/encode_submission"
        data = _json(await self._request("POST", endpoint, txn.to_json()), endpoint)
        if not isinstance(data, str):
            raise _malformed(endpoint, f"expected a hex string, got {data!r}")
        try:
            return bytes.fromhex(strip_hex_prefix(data))
        except ValueError as e:
            raise _malformed(endpoint, f"signing message is not hex: {data!r}") from e

    async def submit(self, txn: UnsignedTransaction, authenticator: Authenticator) -> str:
        body = txn.to_json()
        body["signature"] = authenticator.to_payload()
        data = _json(await self._request("POST", "/transactions", body), "/transactions")
        tx_hash = data.get("hash") if isinstance(data, dict) else None
        if not isinstance(tx_hash, str) or not tx_hash:
            raise _malformed("/transactions", f"no transaction hash in {data!r}")
        logger.info("Submitted transaction %s (%s)", tx_hash, txn.payload.function)
        return tx_hash

    async def wait_for_confirmation(
        self, tx_hash: str, timeout: float = 30.0, poll_interval: float = 1.0
    ) -> TxReceipt:
        """Poll until the transaction is committed.

        Returns a receipt with the VM outcome; raises ChainClientError if the
        transaction is still unknown or pending when the timeout elapses.
        """
        endpoint = f"/transactions/by_hash/{tx_hash}"
        deadline = self._clock() + timeout
        while self._clock() < deadline:
            resp = await self._request("GET", endpoint, allow_404=True)
            if resp.status_code != 404:
                data = _json(resp, endpoint)
                if not isinstance(data, dict):
                    raise _malformed(endpoint, f"expected an object, got {data!r}")
                if data.get("type") != "pending_transaction":
                    success = bool(data.get("success", False))
                    vm_status = str(data.get("vm_status", ""))
                    logger.info("Transaction %s committed: success=%s %s", tx_hash, success, vm_status)
                    return TxReceipt(tx_hash=tx_hash, success=success, vm_status=vm_status)
            await self._sleep(poll_interval)
        raise ChainClientError(f"Transaction {tx_hash} not confirmed within {timeout}s")

    async def aclose(self) -> None:
        await self._client.aclose()


def _json(resp: httpx.Response, endpoint: str) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise _malformed(endpoint, f"body is not JSON: {resp.text[:200]!r}") from e


def _malformed(endpoint: str, detail: str) -> ChainClientError:
    logger.error("Malformed fullnode response from %s: %s", endpoint, detail)
    return ChainClientError(f"Malformed response from {endpoint}: {detail}")


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.text
