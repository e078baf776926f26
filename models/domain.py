"""
Core domain models for the Remit engine.

These are plain dataclasses used throughout the engine layer.
Stores hold them by reference; a database-backed store would map them 1:1.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ─────────────────────────────────────────────────────────────────────

class TransferStatus(str, Enum):
    PENDING          = "pending"
    AWAITING_FUNDING = "awaiting_funding"   # created on the provider, balance debit refused
    PROCESSING       = "processing"
    COMPLETED        = "completed"

    @property
    def progress(self) -> int:
        """Index into pending → processing → completed. Never decreases."""
        return _STATUS_PROGRESS[self]


_STATUS_PROGRESS: dict[TransferStatus, int] = {
    TransferStatus.PENDING:          0,
    TransferStatus.AWAITING_FUNDING: 0,
    TransferStatus.PROCESSING:       1,
    TransferStatus.COMPLETED:        2,
}

# Canonical forward path used by status checks
STATUS_SEQUENCE: list[TransferStatus] = [
    TransferStatus.PENDING,
    TransferStatus.PROCESSING,
    TransferStatus.COMPLETED,
]


class OrchestrationStage(str, Enum):
    DRAFT             = "draft"
    VALIDATING        = "validating"
    QUOTED            = "quoted"
    RECIPIENT_CREATED = "recipient_created"
    SUBMITTED         = "submitted"
    FUNDED            = "funded"
    AWAITING_FUNDING  = "awaiting_funding"
    SIMULATED         = "simulated"


class ScheduleStatus(str, Enum):
    ACTIVE    = "active"
    CANCELLED = "cancelled"


# ── Reference data ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Corridor:
    country: str
    currency_code: str
    delivery_time_label: str      # "Minutes" | "Same day" | "1-2 business days"
    region: str

    def to_payload(self) -> dict:
        return {
            "country":             self.country,
            "currency_code":       self.currency_code,
            "delivery_time_label": self.delivery_time_label,
            "region":              self.region,
        }


@dataclass(frozen=True)
class ExchangeRateSnapshot:
    """Immutable rate table relative to `base_currency`. Replaced whole, never mutated."""
    base_currency: str
    rates: dict[str, Decimal]
    fetched_at: datetime
    as_of: Optional[str] = None   # provider's own date stamp, e.g. "2026-03-02"
    source: str = "live"          # "live" | "fallback"

    def has(self, currency: str) -> bool:
        return currency.upper() in self.rates


@dataclass(frozen=True)
class FeeBreakdown:
    """Display-only fee metadata returned alongside a transfer. Not persisted."""
    base_amount: Decimal
    fee_percentage: Decimal       # e.g. Decimal("1.5") for 1.5%
    fee_amount: Decimal
    net_amount: Decimal
    rate: Decimal
    final_amount: Decimal
    source_currency: str
    target_currency: str

    def to_payload(self) -> dict:
        return {
            "base_amount":     str(self.base_amount),
            "fee_percentage":  str(self.fee_percentage),
            "fee_amount":      str(self.fee_amount),
            "net_amount":      str(self.net_amount),
            "rate":            str(self.rate),
            "final_amount":    str(self.final_amount),
            "source_currency": self.source_currency,
            "target_currency": self.target_currency,
        }


# ── Entities ──────────────────────────────────────────────────────────────────

@dataclass
class Transfer:
    """
    One money movement, created exactly once by the orchestrator.

    Invariants:
        net_amount    == source_amount - fee_amount
        target_amount == net_amount * exchange_rate
    Recipient name/country are a snapshot taken at creation time.
    """
    id: str
    source_currency: str
    target_currency: str
    source_amount: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    exchange_rate: Decimal
    target_amount: Decimal
    recipient_name: str
    recipient_country: str
    delivery_time_label: str
    status: TransferStatus
    estimated_arrival: datetime
    is_real_transfer: bool = False
    provider_transfer_id: Optional[str] = None
    fallback_note: Optional[str] = None
    stage: OrchestrationStage = OrchestrationStage.SIMULATED
    idempotency_key: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)

    def to_payload(self) -> dict:
        return {
            "id":                   self.id,
            "provider_transfer_id": self.provider_transfer_id,
            "source_currency":      self.source_currency,
            "target_currency":      self.target_currency,
            "source_amount":        str(self.source_amount),
            "fee_amount":           str(self.fee_amount),
            "net_amount":           str(self.net_amount),
            "exchange_rate":        str(self.exchange_rate),
            "target_amount":        str(self.target_amount),
            "recipient_name":       self.recipient_name,
            "recipient_country":    self.recipient_country,
            "delivery_time_label":  self.delivery_time_label,
            "status":               self.status.value,
            "stage":                self.stage.value,
            "estimated_arrival":    self.estimated_arrival.isoformat(),
            "created_at":           self.created_at.isoformat(),
            "is_real_transfer":     self.is_real_transfer,
            "fallback_note":        self.fallback_note,
        }


@dataclass
class Recipient:
    id: str
    name: str
    country: str
    currency_code: str
    details: dict[str, Any] = field(default_factory=dict)
    total_sent: Decimal = Decimal("0")
    transfer_count: int = 0
    created_at: datetime = field(default_factory=_utcnow)

    def to_payload(self) -> dict:
        return {
            "id":             self.id,
            "name":           self.name,
            "country":        self.country,
            "currency_code":  self.currency_code,
            "total_sent":     str(self.total_sent),
            "transfer_count": self.transfer_count,
            "created_at":     self.created_at.isoformat(),
        }


@dataclass
class ScheduledTransfer:
    """
    Recurring transfer definition. The engine only computes `next_execution_at`;
    an external scheduler performs the executions.

    Lifecycle: active → cancelled (terminal)
    """
    id: str
    recipient_name: str
    recipient_country: str
    amount: Decimal
    currency_from: str
    currency_to: str
    frequency: str
    next_execution_at: datetime
    status: ScheduleStatus = ScheduleStatus.ACTIVE
    execution_count: int = 0
    created_at: datetime = field(default_factory=_utcnow)
    cancelled_at: Optional[datetime] = None

    def to_payload(self) -> dict:
        return {
            "id":                self.id,
            "recipient_name":    self.recipient_name,
            "recipient_country": self.recipient_country,
            "amount":            str(self.amount),
            "currency_from":     self.currency_from,
            "currency_to":       self.currency_to,
            "frequency":         self.frequency,
            "next_execution_at": self.next_execution_at.isoformat(),
            "status":            self.status.value,
            "execution_count":   self.execution_count,
            "created_at":        self.created_at.isoformat(),
            "cancelled_at":      self.cancelled_at.isoformat() if self.cancelled_at else None,
        }


# ── Orchestration results ─────────────────────────────────────────────────────

@dataclass
class TransferResult:
    """Returned by submit/repeat: the persisted transfer plus display metadata."""
    transfer: Transfer
    breakdown: FeeBreakdown
    stages: list[OrchestrationStage] = field(default_factory=list)


@dataclass
class StatusCheck:
    transfer: Transfer
    previous_status: TransferStatus
    changed: bool


@dataclass
class Quote:
    corridor: Corridor
    breakdown: FeeBreakdown
    rates_as_of: Optional[str] = None
    rates_source: str = "live"
