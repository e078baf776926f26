"""
PaymentProvider — contract between the orchestrator and an external payout provider.

Every call returns either its success contract or a ProviderFailure value;
adapters never raise for provider-side problems. The orchestrator branches
with isinstance() instead of probing response fields.

    create_quote      → ProviderQuote        | ProviderFailure
    create_recipient  → ProviderRecipient    | ProviderFailure
    create_transfer   → ProviderTransfer     | ProviderFailure
    fund_transfer     → ProviderFunding      | ProviderFailure
    get_transfer      → ProviderTransfer     | ProviderFailure
    list_transfers    → list[ProviderTransfer] | ProviderFailure
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


# ── Failure ───────────────────────────────────────────────────────────────────


class FailureKind(str, Enum):
    NETWORK    = "network"      # connection refused, DNS, reset
    TIMEOUT    = "timeout"
    REJECTED   = "rejected"     # provider answered with a 4xx/5xx validation error
    PERMISSION = "permission"   # credential cannot authorise the operation (401/403)
    UNEXPECTED = "unexpected"   # 2xx with a body we cannot interpret


@dataclass(frozen=True)
class ProviderFailure:
    step: str                   # "quote" | "recipient" | "transfer" | "funding" | "status" | "list"
    kind: FailureKind
    message: str
    status_code: int | None = None

    def describe(self) -> str:
        return f"{self.step} failed ({self.kind.value}): {self.message}"


# ── Success contracts ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProviderQuote:
    quote_id: str
    rate: Decimal
    source_amount: Decimal
    target_amount: Decimal | None = None
    fee: Decimal | None = None
    estimated_delivery: datetime | None = None


@dataclass(frozen=True)
class ProviderRecipient:
    recipient_id: str


@dataclass(frozen=True)
class ProviderTransfer:
    transfer_id: str
    status: str


@dataclass(frozen=True)
class ProviderFunding:
    status: str                 # e.g. "COMPLETED"


QuoteResult     = ProviderQuote | ProviderFailure
RecipientResult = ProviderRecipient | ProviderFailure
TransferOutcome = ProviderTransfer | ProviderFailure
FundingResult   = ProviderFunding | ProviderFailure


# ── Interface ─────────────────────────────────────────────────────────────────


class PaymentProvider(ABC):
    """Abstract interface to the provider's transfer API."""

    @abstractmethod
    async def create_quote(
        self, *, source_currency: str, target_currency: str, source_amount: Decimal,
    ) -> QuoteResult:
        """Lock a rate for a source amount."""

    @abstractmethod
    async def create_recipient(
        self,
        *,
        currency: str,
        recipient_type: str,
        account_holder_name: str,
        details: dict[str, Any],
    ) -> RecipientResult:
        """Register the beneficiary account."""

    @abstractmethod
    async def create_transfer(
        self,
        *,
        recipient_id: str,
        quote_id: str,
        idempotency_key: str,
        reference: str,
    ) -> TransferOutcome:
        """Create the transfer. `idempotency_key` dedupes retried submissions."""

    @abstractmethod
    async def fund_transfer(self, transfer_id: str) -> FundingResult:
        """Debit the operator balance to fund the transfer."""

    @abstractmethod
    async def get_transfer(self, transfer_id: str) -> TransferOutcome:
        """Current provider-side status."""

    @abstractmethod
    async def list_transfers(self, limit: int = 10) -> list[ProviderTransfer] | ProviderFailure:
        """Most recent transfers on the operator profile."""


# ── MockPaymentProvider ───────────────────────────────────────────────────────


class MockPaymentProvider(PaymentProvider):
    """
    Configurable in-process provider for tests and local demos.

    Attributes
    ----------
    failures:   step name → ProviderFailure returned instead of success
    rate:       rate quoted for every currency pair
    statuses:   transfer_id → status reported by get_transfer (default "processing")
    calls:      (step, kwargs) log of every call, in order
    """

    def __init__(self, rate: Decimal = Decimal("17.25")) -> None:
        self.rate = rate
        self.failures: dict[str, ProviderFailure] = {}
        self.statuses: dict[str, str] = {}
        self.calls: list[tuple[str, dict]] = []
        self._seq = 0

    def fail(self, step: str, kind: FailureKind = FailureKind.REJECTED, message: str = "rejected",
             status_code: int | None = 422) -> None:
        self.failures[step] = ProviderFailure(step, kind, message, status_code)

    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def steps(self) -> list[str]:
        return [step for step, _ in self.calls]

    async def create_quote(self, *, source_currency, target_currency, source_amount):
        self.calls.append(("quote", {
            "source_currency": source_currency,
            "target_currency": target_currency,
            "source_amount":   source_amount,
        }))
        if "quote" in self.failures:
            return self.failures["quote"]
        return ProviderQuote(
            quote_id=self._next("Q"),
            rate=self.rate,
            source_amount=source_amount,
            target_amount=source_amount * self.rate,
        )

    async def create_recipient(self, *, currency, recipient_type, account_holder_name, details):
        self.calls.append(("recipient", {
            "currency":            currency,
            "recipient_type":      recipient_type,
            "account_holder_name": account_holder_name,
            "details":             details,
        }))
        if "recipient" in self.failures:
            return self.failures["recipient"]
        return ProviderRecipient(recipient_id=self._next("R"))

    async def create_transfer(self, *, recipient_id, quote_id, idempotency_key, reference):
        self.calls.append(("transfer", {
            "recipient_id":    recipient_id,
            "quote_id":        quote_id,
            "idempotency_key": idempotency_key,
            "reference":       reference,
        }))
        if "transfer" in self.failures:
            return self.failures["transfer"]
        transfer_id = self._next("T")
        self.statuses.setdefault(transfer_id, "incoming_payment_waiting")
        return ProviderTransfer(transfer_id=transfer_id, status="incoming_payment_waiting")

    async def fund_transfer(self, transfer_id):
        self.calls.append(("funding", {"transfer_id": transfer_id}))
        if "funding" in self.failures:
            return self.failures["funding"]
        self.statuses[transfer_id] = "processing"
        return ProviderFunding(status="COMPLETED")

    async def get_transfer(self, transfer_id):
        self.calls.append(("status", {"transfer_id": transfer_id}))
        if "status" in self.failures:
            return self.failures["status"]
        return ProviderTransfer(transfer_id=transfer_id, status=self.statuses.get(transfer_id, "processing"))

    async def list_transfers(self, limit=10):
        self.calls.append(("list", {"limit": limit}))
        if "list" in self.failures:
            return self.failures["list"]
        items = [ProviderTransfer(tid, status) for tid, status in self.statuses.items()]
        return items[-limit:]
