"""
Rate comparison — what the recipient would get through typical alternatives.

Benchmarks apply a flat fee plus an FX margin on top of the mid-market rate.
Figures are indicative reference pricing, not live competitor quotes.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from models.domain import FeeBreakdown


@dataclass(frozen=True)
class BenchmarkProfile:
    name: str
    flat_fee: Decimal
    fx_margin: Decimal           # fraction shaved off the mid-market rate


BENCHMARKS: tuple[BenchmarkProfile, ...] = (
    BenchmarkProfile("Traditional bank wire", Decimal("25.00"), Decimal("0.035")),
    BenchmarkProfile("Cash pickup agent",     Decimal("9.99"),  Decimal("0.025")),
)


@dataclass(frozen=True)
class ComparisonRow:
    provider: str
    fee: Decimal
    rate: Decimal
    recipient_gets: Decimal
    savings: Decimal             # how much more our quote delivers (target currency)

    def to_payload(self) -> dict:
        return {
            "provider":       self.provider,
            "fee":            str(self.fee),
            "rate":           str(self.rate),
            "recipient_gets": str(self.recipient_gets),
            "savings":        str(self.savings),
        }


def compare(ours: FeeBreakdown, benchmarks: tuple[BenchmarkProfile, ...] = BENCHMARKS) -> list[ComparisonRow]:
    """Rows for every benchmark, each with the difference against `ours`."""
    rows: list[ComparisonRow] = []
    for profile in benchmarks:
        rate = ours.rate * (Decimal("1") - profile.fx_margin)
        net  = max(Decimal("0"), ours.base_amount - profile.flat_fee)
        gets = net * rate
        rows.append(ComparisonRow(
            provider=profile.name,
            fee=profile.flat_fee,
            rate=rate,
            recipient_gets=gets,
            savings=ours.final_amount - gets,
        ))
    return rows
