"""
WiseProvider — implements PaymentProvider on top of WiseClient.

Translation rules:
  httpx.TimeoutException          → FailureKind.TIMEOUT
  other httpx.HTTPError           → FailureKind.NETWORK
  WiseError 401 / 403             → FailureKind.PERMISSION
  other WiseError                 → FailureKind.REJECTED
  missing / malformed fields      → FailureKind.UNEXPECTED

Every failure is logged with the provider's message before being returned.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable

import httpx

from engine.provider import (
    FailureKind,
    FundingResult,
    PaymentProvider,
    ProviderFailure,
    ProviderFunding,
    ProviderQuote,
    ProviderRecipient,
    ProviderTransfer,
    QuoteResult,
    RecipientResult,
    TransferOutcome,
)
from engine.wise_client import WiseClient, WiseError

logger = logging.getLogger("remit.wise.provider")

_PERMISSION_STATUSES = (401, 403)


def _decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _parse_datetime(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _quote_fee(body: dict) -> Decimal | None:
    """v2 quotes carry the fee on the chosen payment option; older shapes at top level."""
    if "fee" in body:
        return _decimal(body.get("fee"))
    for option in body.get("paymentOptions") or []:
        if isinstance(option, dict) and not option.get("disabled"):
            fee = option.get("fee") or {}
            return _decimal(fee.get("total") if isinstance(fee, dict) else fee)
    return None


class WiseProvider(PaymentProvider):
    """Plugs into TransferOrchestrator as the provider for real transfers."""

    def __init__(self, client: WiseClient) -> None:
        self._client = client

    async def _call(self, step: str, call: Callable[[], Awaitable[Any]]) -> Any | ProviderFailure:
        try:
            return await call()
        except WiseError as exc:
            kind = (
                FailureKind.PERMISSION if exc.status_code in _PERMISSION_STATUSES
                else FailureKind.REJECTED
            )
            failure = ProviderFailure(step, kind, exc.detail, exc.status_code)
        except httpx.TimeoutException as exc:
            failure = ProviderFailure(step, FailureKind.TIMEOUT, f"timed out: {exc}" if str(exc) else "timed out")
        except httpx.HTTPError as exc:
            failure = ProviderFailure(step, FailureKind.NETWORK, f"{type(exc).__name__}: {exc}")
        except ValueError as exc:
            # Non-JSON body on a 2xx
            failure = ProviderFailure(step, FailureKind.UNEXPECTED, f"unreadable response: {exc}")

        logger.warning(
            "wise %s failed: kind=%s status=%s message=%s",
            step, failure.kind.value, failure.status_code, failure.message,
        )
        return failure

    @staticmethod
    def _unexpected(step: str, body: Any, missing: str) -> ProviderFailure:
        logger.warning("wise %s returned unexpected body (missing %s): %r", step, missing, body)
        return ProviderFailure(step, FailureKind.UNEXPECTED, f"response missing '{missing}'")

    # ── PaymentProvider ───────────────────────────────────────────────────

    async def create_quote(self, *, source_currency, target_currency, source_amount) -> QuoteResult:
        body = await self._call("quote", lambda: self._client.create_quote(
            source_currency=source_currency,
            target_currency=target_currency,
            source_amount=source_amount,
        ))
        if isinstance(body, ProviderFailure):
            return body
        if not isinstance(body, dict) or not body.get("id"):
            return self._unexpected("quote", body, "id")
        rate = _decimal(body.get("rate"))
        if rate is None or rate <= 0:
            return self._unexpected("quote", body, "rate")

        return ProviderQuote(
            quote_id=str(body["id"]),
            rate=rate,
            source_amount=_decimal(body.get("sourceAmount")) or source_amount,
            target_amount=_decimal(body.get("targetAmount")),
            fee=_quote_fee(body),
            estimated_delivery=_parse_datetime(
                body.get("estimatedDelivery") or body.get("deliveryEstimate")
            ),
        )

    async def create_recipient(self, *, currency, recipient_type, account_holder_name, details) -> RecipientResult:
        body = await self._call("recipient", lambda: self._client.create_recipient(
            currency=currency,
            recipient_type=recipient_type,
            account_holder_name=account_holder_name,
            details=details,
        ))
        if isinstance(body, ProviderFailure):
            return body
        if not isinstance(body, dict) or body.get("id") is None:
            return self._unexpected("recipient", body, "id")
        return ProviderRecipient(recipient_id=str(body["id"]))

    async def create_transfer(self, *, recipient_id, quote_id, idempotency_key, reference) -> TransferOutcome:
        body = await self._call("transfer", lambda: self._client.create_transfer(
            target_account=recipient_id,
            quote_uuid=quote_id,
            customer_transaction_id=idempotency_key,
            reference=reference,
        ))
        if isinstance(body, ProviderFailure):
            return body
        if not isinstance(body, dict) or body.get("id") is None:
            return self._unexpected("transfer", body, "id")
        return ProviderTransfer(transfer_id=str(body["id"]), status=str(body.get("status", "")))

    async def fund_transfer(self, transfer_id) -> FundingResult:
        body = await self._call("funding", lambda: self._client.fund_transfer(transfer_id))
        if isinstance(body, ProviderFailure):
            return body
        status = str(body.get("status", "")) if isinstance(body, dict) else ""
        if status.upper() == "REJECTED":
            error = body.get("errorCode") or "funding rejected"
            logger.warning("wise funding rejected: transfer=%s error=%s", transfer_id, error)
            return ProviderFailure("funding", FailureKind.REJECTED, str(error))
        return ProviderFunding(status=status or "COMPLETED")

    async def get_transfer(self, transfer_id) -> TransferOutcome:
        body = await self._call("status", lambda: self._client.get_transfer(transfer_id))
        if isinstance(body, ProviderFailure):
            return body
        if not isinstance(body, dict) or not body.get("status"):
            return self._unexpected("status", body, "status")
        return ProviderTransfer(transfer_id=str(body.get("id", transfer_id)), status=str(body["status"]))

    async def list_transfers(self, limit=10):
        body = await self._call("list", lambda: self._client.list_transfers(limit))
        if isinstance(body, ProviderFailure):
            return body
        if not isinstance(body, list):
            return self._unexpected("list", body, "list body")
        return [
            ProviderTransfer(transfer_id=str(item.get("id")), status=str(item.get("status", "")))
            for item in body
            if isinstance(item, dict) and item.get("id") is not None
        ]
