"""
Fee computation for outgoing transfers.

    fee = clamp(amount * standard_rate, min_fee, max_fee)

Money is Decimal throughout; the fee is rounded to cents (ROUND_HALF_UP).
validate_amount() screens caller input; compute_fee() on a non-positive amount is a
programming error here and raises ValueError.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, TYPE_CHECKING

from models.domain import FeeBreakdown
from models.errors import ValidationFailed

if TYPE_CHECKING:
    from config.settings import Settings

CENT = Decimal("0.01")


@dataclass(frozen=True)
class FeeConfig:
    standard_rate: Decimal = Decimal("0.015")
    min_fee: Decimal       = Decimal("2.99")
    max_fee: Decimal       = Decimal("50")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "FeeConfig":
        return cls(
            standard_rate=Decimal(str(settings.fee_standard_rate)),
            min_fee=Decimal(str(settings.fee_min)),
            max_fee=Decimal(str(settings.fee_max)),
        )

    @property
    def percentage(self) -> Decimal:
        return (self.standard_rate * 100).normalize()


def to_money(value) -> Decimal:
    """Coerce int / float / str / Decimal to Decimal without float artefacts."""
    return value if isinstance(value, Decimal) else Decimal(str(value))


def compute_fee(amount: Decimal | float, config: FeeConfig) -> Decimal:
    amount = to_money(amount)
    if amount <= 0:
        raise ValueError(f"fee is undefined for non-positive amount {amount}")
    raw = amount * config.standard_rate
    fee = max(config.min_fee, min(raw, config.max_fee))
    return fee.quantize(CENT, rounding=ROUND_HALF_UP)


def build_breakdown(
    amount: Decimal | float,
    rate: Decimal,
    config: FeeConfig,
    source_currency: str,
    target_currency: str,
    fee: Decimal | None = None,
) -> FeeBreakdown:
    """
    Fee breakdown for display.

    `fee` overrides the computed fee (repeat transfers keep the original fee).
    """
    amount = to_money(amount)
    fee    = compute_fee(amount, config) if fee is None else fee
    net    = amount - fee
    return FeeBreakdown(
        base_amount=amount,
        fee_percentage=config.percentage,
        fee_amount=fee,
        net_amount=net,
        rate=rate,
        final_amount=net * rate,
        source_currency=source_currency,
        target_currency=target_currency,
    )


def _display(value: Decimal) -> str:
    """5000.0 → "5000", 2500.5 → "2500.50"."""
    if value == value.to_integral_value():
        return str(int(value))
    return str(value.quantize(CENT))


def validate_amount(amount: Any, per_transaction_limit: float | Decimal, currency: str) -> Decimal:
    """
    Parse a caller-supplied send amount.

    Raises ValidationFailed when missing, non-numeric, non-finite, not
    positive or above the per-transaction limit.
    """
    if amount is None or amount == "":
        raise ValidationFailed("Missing required field: amount")
    if isinstance(amount, bool):
        raise ValidationFailed("Amount must be a number")
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"Amount must be a number, got '{amount}'")
    if not value.is_finite():
        raise ValidationFailed("Amount must be a finite number")
    if value <= 0:
        raise ValidationFailed("Amount must be greater than 0")

    limit = to_money(per_transaction_limit)
    if value > limit:
        raise ValidationFailed(
            f"Amount exceeds per-transaction limit of {_display(limit)} {currency}"
        )
    return value
