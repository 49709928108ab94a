"""Clover REST API client.

Provides:
- Order creation (v3 merchants API)
- Bill printing on the merchant's default printer
- OAuth authorization code exchange
- Printer listing and a connection check for diagnostics

Uses a synchronous httpx client. Requests are never retried: Clover order
creation takes no idempotency key, so a retry could create a second order.
"""

import logging
import urllib.parse
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from clover_sync.core.exceptions import ConfigurationError, SchemaError, TransportError
from clover_sync.services.audit_log import AuditLog

logger = logging.getLogger(__name__)

# Clover environment URLs
CLOVER_ENV = {
    "sandbox": {
        "api_base": "https://apisandbox.dev.clover.com",
        "oauth_base": "https://sandbox.dev.clover.com",
    },
    "production": {
        "api_base": "https://api.clover.com",
        "oauth_base": "https://www.clover.com",
    },
}

PRINT_REQUEST = {
    "printerId": "default",
    "type": "receipt",
    "includeItems": True,
    "includeTotals": True,
}


@dataclass
class OAuthTokens:
    """Result of an authorization code exchange."""
    access_token: str
    merchant_id: str


class PosClient(ABC):
    """Interface the sync orchestrator needs from a POS."""

    @abstractmethod
    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create an order. The returned dict always carries ``id``."""

    @abstractmethod
    def print_bill(self, pos_order_id: str) -> None:
        """Print the receipt for an order. Raises on failure."""

    @abstractmethod
    def get_access_token(self, auth_code: str, merchant_id: Optional[str] = None) -> OAuthTokens:
        """Exchange an OAuth authorization code for an access token."""


class CloverClient(PosClient):
    """Clover REST API gateway."""

    def __init__(
        self,
        client_id: str = "",
        client_secret: str = "",
        access_token: str = "",
        merchant_id: str = "",
        environment: str = "sandbox",
        redirect_uri: str = "",
        timeout: float = 20.0,
        audit_log: Optional[AuditLog] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        if environment not in CLOVER_ENV:
            raise ValueError(f"Unknown Clover environment: {environment}")
        self.client_id = client_id
        self.client_secret = client_secret
        self.access_token = access_token
        self.merchant_id = merchant_id
        self.environment = environment
        self.redirect_uri = redirect_uri
        self.api_base = CLOVER_ENV[environment]["api_base"]
        self.oauth_base = CLOVER_ENV[environment]["oauth_base"]
        self.audit_log = audit_log
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "CloverClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _debug(self, message: str) -> None:
        if self.audit_log is not None:
            self.audit_log.debug(message)
        else:
            logger.debug(message)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _require_credentials(self) -> None:
        missing = [
            name for name, value in (
                ("access_token", self.access_token),
                ("merchant_id", self.merchant_id),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(missing)

    def _merchant_url(self, path: str = "") -> str:
        return f"{self.api_base}/v3/merchants/{self.merchant_id}{path}"

    def _send(self, method: str, url: str, log_body: bool = True, **kwargs) -> Tuple[int, Any]:
        """Send a request and return (status_code, parsed body).

        Raises TransportError on network failures and non-2xx responses.
        """
        try:
            resp = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Clover request {method} {url} failed: {e}")
            raise TransportError(f"Clover request failed: {e}") from e

        body: Any = {}
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text

        if log_body:
            self._debug(f"Clover API response ({resp.status_code}) for {method} {url}: {resp.text}")

        if not 200 <= resp.status_code < 300:
            raise TransportError("Clover API call failed", status_code=resp.status_code, body=body)
        return resp.status_code, body

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create an order in Clover."""
        self._require_credentials()
        _, body = self._send("POST", self._merchant_url("/orders"), json=payload, headers=self._headers())

        if not isinstance(body, dict) or not body.get("id"):
            raise SchemaError("Failed to create order in Clover", field="id", body=body)
        return body

    def print_bill(self, pos_order_id: str) -> None:
        """Print the bill for an order on the default printer."""
        self._require_credentials()
        status_code, body = self._send(
            "POST",
            self._merchant_url(f"/orders/{pos_order_id}/print"),
            json=PRINT_REQUEST,
            headers=self._headers(),
        )
        if status_code != 200:
            raise TransportError("Failed to print bill from Clover", status_code=status_code, body=body)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_printers(self) -> List[Dict[str, Any]]:
        """List the merchant's printers."""
        self._require_credentials()
        _, body = self._send("GET", self._merchant_url("/printers"), headers=self._headers())

        if not isinstance(body, dict) or "elements" not in body:
            raise SchemaError("Failed to retrieve printers from Clover", field="elements", body=body)
        return body["elements"]

    def test_connection(self) -> Dict[str, Any]:
        """Fetch the merchant record to check the token and merchant id."""
        self._require_credentials()
        _, body = self._send("GET", self._merchant_url(), headers=self._headers())
        return body if isinstance(body, dict) else {}

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        """Get the OAuth2 authorization URL."""
        if not self.client_id:
            raise ConfigurationError(["client_id"])
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
        }
        if state:
            params["state"] = state
        return f"{self.oauth_base}/oauth/authorize?{urllib.parse.urlencode(params)}"

    def get_access_token(self, auth_code: str, merchant_id: Optional[str] = None) -> OAuthTokens:
        """Exchange an authorization code for an access token.

        Clover passes the merchant id on the redirect rather than in the token
        response, so the callback's ``merchant_id`` is used when the body has none.
        """
        missing = [
            name for name, value in (
                ("client_id", self.client_id),
                ("client_secret", self.client_secret),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(missing)

        _, body = self._send(
            "POST",
            f"{self.oauth_base}/oauth/token",
            log_body=False,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": auth_code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
            },
            headers={"Accept": "application/json"},
        )

        if not isinstance(body, dict) or not body.get("access_token"):
            raise SchemaError("Access token not found in response", field="access_token", body=body)

        resolved_merchant = body.get("merchant_id") or merchant_id
        if not resolved_merchant:
            raise SchemaError("Merchant id not found in response", field="merchant_id", body=body)

        return OAuthTokens(access_token=body["access_token"], merchant_id=resolved_merchant)
