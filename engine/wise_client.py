"""
Wise (TransferWise) API client.

Two components:
  WiseApiCommand — builds auth headers, executes async HTTP via httpx
  WiseClient     — thin wrapper exposing quote / recipient / transfer / funding calls

Auth headers:
  Authorization: Bearer {api_key}   — all requests
  Content-Type:  application/json   — POST only

Errors are raised as WiseError (HTTP status + parsed provider message) or
propagate as httpx exceptions (timeouts, connection failures). The adapter in
engine/wise_provider.py turns both into ProviderFailure values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx

logger = logging.getLogger("remit.wise")


# ── Config ────────────────────────────────────────────────────────────────────

@dataclass
class WiseConfig:
    api_key: str
    profile_id: str
    base_url: str                  # No trailing slash, e.g. https://api.sandbox.transferwise.tech
    timeout_sec: float = 30.0


# ── HTTP command ──────────────────────────────────────────────────────────────

class WiseError(Exception):
    def __init__(self, status_code: int, path: str, detail: str, code: str | None = None) -> None:
        self.status_code = status_code
        self.path        = path
        self.detail      = detail
        self.code        = code
        super().__init__(f"Wise HTTP {status_code} on {path}: {detail[:300]}")


def _error_detail(response: httpx.Response) -> tuple[str, str | None]:
    """Pull the human message and error code out of a Wise error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase, None

    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            first = errors[0]
            return str(first.get("message") or first.get("code")), first.get("code")
        message = body.get("message") or body.get("error_description") or body.get("error")
        if message:
            return str(message), body.get("error") if isinstance(body.get("error"), str) else None
    return response.text, None


class WiseApiCommand:
    """Executes a single authenticated HTTP call against the Wise API."""

    def __init__(
        self,
        config: WiseConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config    = config
        self._transport = transport

    def _base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    def _headers(self, with_body: bool) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._config.api_key}"}
        if with_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        body: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        url = self._base_url() + path
        logger.debug("wise %s %s", method, path)

        async with httpx.AsyncClient(
            timeout=self._config.timeout_sec, transport=self._transport,
        ) as client:
            response = await client.request(
                method, url,
                json=body,
                params=params,
                headers=self._headers(body is not None),
            )

        logger.info("wise response status=%s method=%s path=%s", response.status_code, method, path)
        if response.status_code not in (200, 201, 202):
            detail, code = _error_detail(response)
            raise WiseError(status_code=response.status_code, path=path, detail=detail, code=code)
        return response.json() if response.text.strip() else {}

    async def post(self, path: str, body: dict) -> Any:
        return await self.request("POST", path, body=body)

    async def get(self, path: str, params: dict | None = None) -> Any:
        return await self.request("GET", path, params=params)


# ── Client ────────────────────────────────────────────────────────────────────

class WiseClient:
    """
    One method per Wise endpoint used by the engine:
      create_quote(...)        → POST /v2/quotes
      create_recipient(...)    → POST /v1/accounts
      create_transfer(...)     → POST /v1/transfers
      fund_transfer(id)        → POST /v3/profiles/{profile}/transfers/{id}/payments
      get_transfer(id)         → GET  /v1/transfers/{id}
      list_transfers(limit)    → GET  /v1/profiles/{profile}/transfers
    """

    QUOTES_PATH     = "/v2/quotes"
    ACCOUNTS_PATH   = "/v1/accounts"
    TRANSFERS_PATH  = "/v1/transfers"

    def __init__(
        self,
        config: WiseConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._cmd    = WiseApiCommand(config, transport)

    @property
    def profile_id(self) -> str:
        return self._config.profile_id

    async def create_quote(
        self,
        *,
        source_currency: str,
        target_currency: str,
        source_amount: Decimal,
    ) -> dict:
        return await self._cmd.post(self.QUOTES_PATH, {
            "sourceCurrency": source_currency,
            "targetCurrency": target_currency,
            "sourceAmount":   float(source_amount),
            "targetAmount":   None,
            "profile":        self._config.profile_id,
        })

    async def create_recipient(
        self,
        *,
        currency: str,
        recipient_type: str,
        account_holder_name: str,
        details: dict[str, Any],
    ) -> dict:
        return await self._cmd.post(self.ACCOUNTS_PATH, {
            "currency":          currency,
            "type":              recipient_type,
            "profile":           self._config.profile_id,
            "accountHolderName": account_holder_name,
            "details":           details,
        })

    async def create_transfer(
        self,
        *,
        target_account: str,
        quote_uuid: str,
        customer_transaction_id: str,   # idempotency key (UUID)
        reference: str = "",
    ) -> dict:
        return await self._cmd.post(self.TRANSFERS_PATH, {
            "targetAccount":         target_account,
            "quoteUuid":             quote_uuid,
            "customerTransactionId": customer_transaction_id,
            "details":               {"reference": reference} if reference else {},
        })

    async def fund_transfer(self, transfer_id: str) -> dict:
        path = f"/v3/profiles/{self._config.profile_id}/transfers/{transfer_id}/payments"
        return await self._cmd.post(path, {"type": "BALANCE"})

    async def get_transfer(self, transfer_id: str) -> dict:
        return await self._cmd.get(f"{self.TRANSFERS_PATH}/{transfer_id}")

    async def list_transfers(self, limit: int = 10) -> list[dict]:
        path = f"/v1/profiles/{self._config.profile_id}/transfers"
        return await self._cmd.get(path, params={"limit": limit, "offset": 0})
