"""
RateProvider — time-cached exchange-rate table with graceful degradation.

Resolution order on every get_rates():
    1. cached snapshot younger than the TTL        → returned, no await
    2. fresh fetch succeeds                         → cache replaced, returned
    3. fetch fails, a previous snapshot exists      → stale snapshot returned
    4. fetch fails, nothing cached                  → built-in FALLBACK_RATES,
                                                      rebased onto base_currency

Rate unavailability is never raised from here; callers decide when a
specific currency is missing (see rate_for).

Concurrency: refreshes are serialised by an asyncio.Lock. Callers that waited
behind a refresh re-check freshness and reuse its result. The cache is
replaced by a single reference assignment of a frozen snapshot, so readers
never observe a partially written table.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from models.domain import ExchangeRateSnapshot

logger = logging.getLogger("remit.services.rates")

RateFetcher = Callable[[str], Awaitable[Optional[ExchangeRateSnapshot]]]

FALLBACK_BASE = "USD"

# Approximate units per one FALLBACK_BASE, covering every corridor currency
FALLBACK_RATES: dict[str, Decimal] = {
    "USD": Decimal("1"),
    "MXN": Decimal("17.5"),
    "GTQ": Decimal("7.8"),
    "HNL": Decimal("24.5"),
    "DOP": Decimal("58.2"),
    "NIO": Decimal("36.6"),
    "COP": Decimal("3950"),
    "PEN": Decimal("3.75"),
    "JMD": Decimal("155"),
    "HTG": Decimal("132"),
    "PHP": Decimal("56"),
    "INR": Decimal("83"),
    "VND": Decimal("24500"),
    "GBP": Decimal("0.79"),
    "EUR": Decimal("0.92"),
    "NGN": Decimal("1500"),
    "KES": Decimal("129"),
}


def rate_for(snapshot: ExchangeRateSnapshot, source: str, target: str) -> Decimal | None:
    """
    Units of `target` per one unit of `source`, or None if either side is missing.
    """
    source, target = source.upper(), target.upper()
    if source == target:
        return Decimal("1")

    target_rate = snapshot.rates.get(target)
    if source == snapshot.base_currency:
        return target_rate

    source_rate = snapshot.rates.get(source)
    if target == snapshot.base_currency and source_rate:
        return Decimal("1") / source_rate
    if target_rate is None or not source_rate:
        return None
    return target_rate / source_rate


class RateProvider:
    """Serves a rate snapshot for `base_currency`; see module docstring."""

    def __init__(
        self,
        fetcher: RateFetcher,
        base_currency: str = "USD",
        ttl_sec: int = 3600,
        fallback_rates: dict[str, Decimal] | None = None,
    ) -> None:
        self._fetcher  = fetcher
        self._base     = base_currency.upper()
        self._ttl      = timedelta(seconds=ttl_sec)
        self._fallback = dict(fallback_rates or FALLBACK_RATES)
        self._cache: ExchangeRateSnapshot | None = None
        self._lock = asyncio.Lock()

    @property
    def base_currency(self) -> str:
        return self._base

    @property
    def cached(self) -> ExchangeRateSnapshot | None:
        return self._cache

    def is_fresh(self, snapshot: ExchangeRateSnapshot | None) -> bool:
        if snapshot is None or snapshot.source != "live":
            return False
        return datetime.now(timezone.utc) - snapshot.fetched_at < self._ttl

    async def get_rates(self) -> ExchangeRateSnapshot:
        cached = self._cache
        if self.is_fresh(cached):
            return cached

        async with self._lock:
            cached = self._cache
            if self.is_fresh(cached):
                return cached

            snapshot = await self._fetcher(self._base)
            if snapshot is not None:
                self._cache = snapshot
                return snapshot

            if cached is not None:
                logger.warning(
                    "rate refresh failed; serving stale snapshot fetched_at=%s",
                    cached.fetched_at.isoformat(),
                )
                return cached

            logger.warning("rate refresh failed and no cache; serving built-in fallback table")
            return self.fallback_snapshot()

    def fallback_snapshot(self) -> ExchangeRateSnapshot:
        """The fallback table (quoted per FALLBACK_BASE) re-expressed per unit of base_currency."""
        rates = dict(self._fallback)
        if self._base != FALLBACK_BASE:
            pivot = rates.get(self._base)
            if not pivot:
                logger.warning("fallback table has no %s rate; no fallback quotes available", self._base)
                rates = {}
            else:
                rates = {ccy: rate / pivot for ccy, rate in rates.items()}
        return ExchangeRateSnapshot(
            base_currency=self._base,
            rates=rates,
            fetched_at=datetime.now(timezone.utc),
            source="fallback",
        )
