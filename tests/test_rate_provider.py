"""
Rate source + RateProvider — TTL cache, stale fallback, built-in table, cross rates.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import httpx
from freezegun import freeze_time

from data.rate_source import fetch_latest_rates, parse_rates
from models.domain import ExchangeRateSnapshot
from services.rate_provider import FALLBACK_RATES, RateProvider, rate_for
from services.corridor_registry import CorridorRegistry


def _snapshot(rates: dict[str, str], base: str = "USD", source: str = "live") -> ExchangeRateSnapshot:
    return ExchangeRateSnapshot(
        base_currency=base,
        rates={k: Decimal(v) for k, v in rates.items()},
        fetched_at=datetime.now(timezone.utc),
        source=source,
    )


class _CountingFetcher:
    """Returns queued results in order; None simulates a failed fetch."""

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls = 0

    async def __call__(self, base: str):
        self.calls += 1
        await asyncio.sleep(0)
        result = self.results.pop(0) if self.results else None
        return result() if callable(result) else result


# ── A. rate_for ───────────────────────────────────────────────────────────────

class TestRateFor:

    def test_identity(self):
        assert rate_for(_snapshot({"MXN": "17.5"}), "mxn", "MXN") == Decimal("1")

    def test_direct_from_base(self):
        assert rate_for(_snapshot({"MXN": "17.5"}), "USD", "MXN") == Decimal("17.5")

    def test_inverse_to_base(self):
        assert rate_for(_snapshot({"EUR": "0.5"}), "EUR", "USD") == Decimal("2")

    def test_cross_rate(self):
        snap = _snapshot({"MXN": "17.5", "GTQ": "7"})
        assert rate_for(snap, "GTQ", "MXN") == Decimal("2.5")

    def test_missing_currency_is_none(self):
        snap = _snapshot({"MXN": "17.5"})
        assert rate_for(snap, "USD", "XYZ") is None
        assert rate_for(snap, "XYZ", "MXN") is None


# ── B. RateProvider caching ───────────────────────────────────────────────────

class TestRateProviderCache:

    async def test_fresh_cache_skips_fetch(self):
        fetcher = _CountingFetcher(lambda: _snapshot({"MXN": "17"}))
        provider = RateProvider(fetcher)

        first = await provider.get_rates()
        second = await provider.get_rates()

        assert first is second
        assert fetcher.calls == 1

    async def test_refresh_after_ttl(self):
        with freeze_time("2026-03-02 10:00:00") as frozen:
            fetcher = _CountingFetcher(
                lambda: _snapshot({"MXN": "17"}),
                lambda: _snapshot({"MXN": "18"}),
            )
            provider = RateProvider(fetcher, ttl_sec=3600)
            assert (await provider.get_rates()).rates["MXN"] == Decimal("17")

            frozen.tick(3601)
            assert (await provider.get_rates()).rates["MXN"] == Decimal("18")
            assert fetcher.calls == 2

    async def test_stale_cache_served_when_refresh_fails(self):
        with freeze_time("2026-03-02 10:00:00") as frozen:
            fetcher = _CountingFetcher(lambda: _snapshot({"MXN": "17"}), None)
            provider = RateProvider(fetcher, ttl_sec=60)
            live = await provider.get_rates()

            frozen.tick(120)
            stale = await provider.get_rates()
            assert stale is live
            assert fetcher.calls == 2

    async def test_builtin_fallback_when_nothing_cached(self):
        provider = RateProvider(_CountingFetcher(None))
        snap = await provider.get_rates()
        assert snap.source == "fallback"
        assert snap.rates["MXN"] == Decimal("17.5")
        assert provider.cached is None

    async def test_fallback_is_retried_next_call(self):
        fetcher = _CountingFetcher(None, lambda: _snapshot({"MXN": "17"}))
        provider = RateProvider(fetcher)
        assert (await provider.get_rates()).source == "fallback"
        assert (await provider.get_rates()).source == "live"

    async def test_concurrent_callers_share_one_refresh(self):
        fetcher = _CountingFetcher(lambda: _snapshot({"MXN": "17"}))
        provider = RateProvider(fetcher)

        results = await asyncio.gather(*(provider.get_rates() for _ in range(5)))

        assert fetcher.calls == 1
        assert all(r is results[0] for r in results)

    async def test_fallback_rebased_onto_other_source_currency(self):
        provider = RateProvider(_CountingFetcher(None), base_currency="GBP")
        snap = await provider.get_rates()

        assert snap.base_currency == "GBP"
        assert snap.rates["GBP"] == Decimal("1")
        assert rate_for(snap, "GBP", "MXN") == FALLBACK_RATES["MXN"] / FALLBACK_RATES["GBP"]
        assert rate_for(snap, "GBP", "USD") == Decimal("1") / FALLBACK_RATES["GBP"]

    async def test_no_fallback_for_unknown_source_currency(self):
        snap = await RateProvider(_CountingFetcher(None), base_currency="XYZ").get_rates()
        assert snap.source == "fallback"
        assert rate_for(snap, "XYZ", "MXN") is None

    def test_fallback_covers_every_corridor_currency(self):
        for code in CorridorRegistry().currencies():
            assert code in FALLBACK_RATES


# ── C. Rate source HTTP ───────────────────────────────────────────────────────

class TestRateSource:

    async def test_fetch_parses_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v4/latest/USD"
            return httpx.Response(200, json={
                "base": "USD", "date": "2026-03-02", "rates": {"MXN": 17.2, "GTQ": 7.7},
            })

        snap = await fetch_latest_rates(
            "usd", url="https://rates.test/v4/latest", transport=httpx.MockTransport(handler),
        )
        assert snap.base_currency == "USD"
        assert snap.as_of == "2026-03-02"
        assert snap.rates["MXN"] == Decimal("17.2")
        assert snap.source == "live"

    async def test_non_200_returns_none(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(500, text="boom"))
        assert await fetch_latest_rates(url="https://rates.test/v4/latest", transport=transport) is None

    async def test_network_error_returns_none(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        transport = httpx.MockTransport(handler)
        assert await fetch_latest_rates(url="https://rates.test/v4/latest", transport=transport) is None

    async def test_malformed_body_returns_none(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text="not json"))
        assert await fetch_latest_rates(url="https://rates.test/v4/latest", transport=transport) is None

    def test_parse_skips_bad_values(self):
        snap = parse_rates({"rates": {"MXN": "17", "BAD": "x", "ZERO": 0}}, "usd")
        assert set(snap.rates) == {"MXN"}
        assert snap.base_currency == "USD"

    def test_parse_empty_rates(self):
        assert parse_rates({"rates": {}}, "USD") is None
