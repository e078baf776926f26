"""
CorridorRegistry — static table of supported destination corridors.

Each corridor maps a destination country to its payout currency, a delivery
label shown to the user, and a region used for grouping. Lookups are pure;
"not supported" is a normal outcome (None), not an exception.
"""

from __future__ import annotations

from datetime import timedelta

from models.domain import Corridor

# ── Delivery labels ───────────────────────────────────────────────────────────

MINUTES       = "Minutes"
SAME_DAY      = "Same day"
BUSINESS_DAYS = "1-2 business days"

# Nominal duration used for simulated arrival estimates
DELIVERY_DURATION: dict[str, timedelta] = {
    MINUTES:       timedelta(minutes=15),
    SAME_DAY:      timedelta(hours=6),
    BUSINESS_DAYS: timedelta(days=2),
}

# ── Corridor table ────────────────────────────────────────────────────────────

CORRIDORS: tuple[Corridor, ...] = (
    # Latin America
    Corridor("Mexico",             "MXN", MINUTES,       "Latin America"),
    Corridor("Guatemala",          "GTQ", SAME_DAY,      "Latin America"),
    Corridor("Honduras",           "HNL", SAME_DAY,      "Latin America"),
    Corridor("El Salvador",        "USD", MINUTES,       "Latin America"),
    Corridor("Nicaragua",          "NIO", BUSINESS_DAYS, "Latin America"),
    Corridor("Colombia",           "COP", BUSINESS_DAYS, "Latin America"),
    Corridor("Peru",               "PEN", BUSINESS_DAYS, "Latin America"),
    # Caribbean
    Corridor("Dominican Republic", "DOP", SAME_DAY,      "Caribbean"),
    Corridor("Jamaica",            "JMD", BUSINESS_DAYS, "Caribbean"),
    Corridor("Haiti",              "HTG", BUSINESS_DAYS, "Caribbean"),
    # Asia
    Corridor("Philippines",        "PHP", MINUTES,       "Asia"),
    Corridor("India",              "INR", MINUTES,       "Asia"),
    Corridor("Vietnam",            "VND", BUSINESS_DAYS, "Asia"),
    # Europe
    Corridor("United Kingdom",     "GBP", SAME_DAY,      "Europe"),
    Corridor("Spain",              "EUR", BUSINESS_DAYS, "Europe"),
    Corridor("Germany",            "EUR", BUSINESS_DAYS, "Europe"),
    # Africa
    Corridor("Nigeria",            "NGN", BUSINESS_DAYS, "Africa"),
    Corridor("Kenya",              "KES", MINUTES,       "Africa"),
)


class CorridorRegistry:
    """Stateless lookup over a fixed corridor tuple."""

    def __init__(self, corridors: tuple[Corridor, ...] = CORRIDORS) -> None:
        self._corridors = corridors
        self._by_country = {c.country.lower(): c for c in corridors}

    def find_by_country(self, name: str | None) -> Corridor | None:
        if not isinstance(name, str) or not name:
            return None
        return self._by_country.get(name.strip().lower())

    def list_by_region(self, region: str) -> list[Corridor]:
        key = region.strip().lower()
        return [c for c in self._corridors if c.region.lower() == key]

    def list_all(self) -> list[Corridor]:
        return list(self._corridors)

    def regions(self) -> list[str]:
        seen: list[str] = []
        for c in self._corridors:
            if c.region not in seen:
                seen.append(c.region)
        return seen

    def supported_countries(self) -> list[str]:
        return [c.country for c in self._corridors]

    def currencies(self) -> set[str]:
        return {c.currency_code for c in self._corridors}

    @staticmethod
    def delivery_duration(corridor: Corridor) -> timedelta:
        return DELIVERY_DURATION.get(corridor.delivery_time_label, timedelta(days=2))
