"""
Transfer statistics for the analytics dashboard.

Limit usage counts every recorded transfer created in the current UTC day /
calendar month against the configured daily and monthly limits.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional, TYPE_CHECKING

from models.domain import Transfer, TransferStatus

if TYPE_CHECKING:
    from config.settings import Settings

_ZERO = Decimal("0")


@dataclass
class LimitUsage:
    used: Decimal
    limit: Decimal

    @property
    def remaining(self) -> Decimal:
        return max(_ZERO, self.limit - self.used)

    @property
    def utilisation_pct(self) -> Decimal:
        if self.limit <= 0:
            return _ZERO
        return (self.used / self.limit * 100).quantize(Decimal("0.1"))

    def to_payload(self) -> dict:
        return {
            "used":            str(self.used),
            "limit":           str(self.limit),
            "remaining":       str(self.remaining),
            "utilisation_pct": str(self.utilisation_pct),
        }


@dataclass
class AnalyticsSummary:
    total_transfers: int
    total_sent: Decimal
    total_fees: Decimal
    average_amount: Decimal
    real_transfers: int
    simulated_transfers: int
    by_status: dict[str, int]
    by_country: dict[str, dict]
    top_recipient: Optional[dict]
    daily: LimitUsage
    monthly: LimitUsage
    currency: str = "USD"
    recent: list[Transfer] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "currency":            self.currency,
            "total_transfers":     self.total_transfers,
            "total_sent":          str(self.total_sent),
            "total_fees":          str(self.total_fees),
            "average_amount":      str(self.average_amount),
            "real_transfers":      self.real_transfers,
            "simulated_transfers": self.simulated_transfers,
            "by_status":           self.by_status,
            "by_country":          self.by_country,
            "top_recipient":       self.top_recipient,
            "daily_limit":         self.daily.to_payload(),
            "monthly_limit":       self.monthly.to_payload(),
            "recent":              [t.to_payload() for t in self.recent],
        }


def summarize(
    transfers: Iterable[Transfer],
    config: "Settings",
    now: datetime | None = None,
    recent: int = 5,
) -> AnalyticsSummary:
    items = list(transfers)
    now   = now or datetime.now(timezone.utc)
    today = now.astimezone(timezone.utc).date()

    total_sent = sum((t.source_amount for t in items), _ZERO)
    total_fees = sum((t.fee_amount for t in items), _ZERO)
    average = (total_sent / len(items)).quantize(Decimal("0.01")) if items else _ZERO

    by_status = {s.value: 0 for s in TransferStatus}
    by_status.update(Counter(t.status.value for t in items))

    by_country: dict[str, dict] = defaultdict(lambda: {"count": 0, "amount": _ZERO})
    per_recipient: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    daily_used = monthly_used = _ZERO
    for t in items:
        by_country[t.recipient_country]["count"] += 1
        by_country[t.recipient_country]["amount"] += t.source_amount
        per_recipient[t.recipient_name] += t.source_amount

        created = t.created_at.astimezone(timezone.utc).date()
        if (created.year, created.month) == (today.year, today.month):
            monthly_used += t.source_amount
            if created == today:
                daily_used += t.source_amount

    top = None
    if per_recipient:
        name, amount = max(per_recipient.items(), key=lambda kv: kv[1])
        top = {"name": name, "total_sent": str(amount)}

    return AnalyticsSummary(
        total_transfers=len(items),
        total_sent=total_sent,
        total_fees=total_fees,
        average_amount=average,
        real_transfers=sum(1 for t in items if t.is_real_transfer),
        simulated_transfers=sum(1 for t in items if not t.is_real_transfer),
        by_status=by_status,
        by_country={
            country: {"count": v["count"], "amount": str(v["amount"])}
            for country, v in by_country.items()
        },
        top_recipient=top,
        daily=LimitUsage(daily_used, Decimal(str(config.daily_limit))),
        monthly=LimitUsage(monthly_used, Decimal(str(config.monthly_limit))),
        currency=config.source_currency.upper(),
        recent=sorted(items, key=lambda t: t.created_at, reverse=True)[:recent],
    )
