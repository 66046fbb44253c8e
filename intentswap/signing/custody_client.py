"""Remote custody API client used as a signing oracle.

Speaks the Privy server-wallet REST API: raw signing of a prepared hash and
wallet lookup for the public key. Requests authenticate with HTTP basic auth
(app id / app secret); when an authorization key is configured, POST requests
also carry a P-256 request signature.
"""

import base64
import json
import logging
import os
from typing import Any

import httpx
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from intentswap.models.common import strip_hex_prefix

logger = logging.getLogger(__name__)

CUSTODY_API_BASE = "https://api.privy.io"
AUTH_KEY_PREFIX = "wallet-auth:"


class CustodyClientError(Exception):
    """Raised when the custody API returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def authorization_signature(
    authorization_key: str, method: str, url: str, body: dict, app_id: str
) -> str:
    """Base64 ECDSA-P256/SHA-256 signature over the canonical request payload."""
    payload = {
        "version": 1,
        "method": method,
        "url": url,
        "body": body,
        "headers": {"privy-app-id": app_id},
    }
    message = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()
    try:
        key = serialization.load_der_private_key(
            base64.b64decode(authorization_key), password=None
        )
    except ValueError as e:
        raise CustodyClientError(f"Invalid authorization key: {e}") from e
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise CustodyClientError("Authorization key must be a P-256 private key")
    signature = key.sign(message, ec.ECDSA(hashes.SHA256()))
    return base64.b64encode(signature).decode()


class CustodySigner:
    def __init__(
        self,
        app_id: str | None = None,
        app_secret: str | None = None,
        authorization_key: str | None = None,
        base_url: str = CUSTODY_API_BASE,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.app_id = app_id or os.environ.get("PRIVY_APP_ID", "")
        self.app_secret = app_secret or os.environ.get("PRIVY_APP_SECRET", "")
        if not self.app_id or not self.app_secret:
            raise CustodyClientError("PRIVY_APP_ID / PRIVY_APP_SECRET not set")
        auth_key = authorization_key or os.environ.get("PRIVY_AUTHORIZATION_KEY", "")
        self.authorization_key = auth_key.removeprefix(AUTH_KEY_PREFIX)
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self, method: str, url: str, body: dict | None) -> dict[str, str]:
        headers = {
            "privy-app-id": self.app_id,
            "Content-Type": "application/json",
        }
        if self.authorization_key and method == "POST" and body is not None:
            headers["privy-authorization-signature"] = authorization_signature(
                self.authorization_key, method, url, body, self.app_id
            )
        return headers

    async def _request(self, method: str, endpoint: str, body: dict | None = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = await self._client.request(
                method,
                url,
                headers=self._headers(method, url, body),
                auth=(self.app_id, self.app_secret),
                json=body,
            )
        except httpx.RequestError as e:
            logger.error("Custody API request failed: %s %s -> %s", method, endpoint, e)
            raise CustodyClientError(f"Request failed: {e}") from e
        if resp.status_code >= 400:
            logger.error(
                "Custody API %d: %s %s -> %s", resp.status_code, method, endpoint, resp.text
            )
            raise CustodyClientError(f"HTTP {resp.status_code}: {resp.text}", resp.status_code)
        return resp.json()

    async def sign(self, wallet_handle: str, digest: bytes) -> bytes:
        """Raw-sign a prepared hash with the custodied wallet."""
        result = await self._request(
            "POST",
            f"/v1/wallets/{wallet_handle}/raw_sign",
            {"params": {"hash": "0x" + digest.hex()}},
        )
        data = result.get("data") or result
        signature = data.get("signature")
        if not signature:
            raise CustodyClientError("Custody API returned no signature")
        return bytes.fromhex(strip_hex_prefix(signature))

    async def get_public_key(self, wallet_handle: str) -> bytes:
        wallet = await self._request("GET", f"/v1/wallets/{wallet_handle}")
        public_key = wallet.get("public_key")
        if not public_key:
            raise CustodyClientError(f"Wallet {wallet_handle} has no public key")
        return bytes.fromhex(strip_hex_prefix(public_key))

    async def get_address(self, wallet_handle: str) -> str:
        wallet = await self._request("GET", f"/v1/wallets/{wallet_handle}")
        return wallet.get("address", "")

    async def aclose(self) -> None:
        await self._client.aclose()
