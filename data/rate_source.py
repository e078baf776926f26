"""
HTTP client for the public "latest rates" API (exchangerate-api.com v4).

    GET {rates_url}/{base}  →  {"base": "USD", "date": "2026-03-02", "rates": {...}}

No authentication. Returns None on any failure so the caller can serve a
cached or built-in table instead.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from models.domain import ExchangeRateSnapshot

logger = logging.getLogger("remit.data.rate_source")

DEFAULT_URL = "https://api.exchangerate-api.com/v4/latest"
_TIMEOUT = 10.0  # seconds


def parse_rates(payload: dict, base: str) -> Optional[ExchangeRateSnapshot]:
    """Build a snapshot from the API body; None if the body has no usable rates."""
    raw = payload.get("rates")
    if not isinstance(raw, dict) or not raw:
        return None

    rates: dict[str, Decimal] = {}
    for code, value in raw.items():
        try:
            rate = Decimal(str(value))
        except (InvalidOperation, ValueError):
            continue
        if rate > 0:
            rates[str(code).upper()] = rate

    if not rates:
        return None

    return ExchangeRateSnapshot(
        base_currency=str(payload.get("base") or base).upper(),
        rates=rates,
        fetched_at=datetime.now(timezone.utc),
        as_of=payload.get("date"),
        source="live",
    )


async def fetch_latest_rates(
    base: str = "USD",
    url: str = DEFAULT_URL,
    timeout: float = _TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Optional[ExchangeRateSnapshot]:
    """
    GET the latest rate table relative to `base`.

    Returns None on network error, non-200 status or malformed body.
    """
    endpoint = f"{url.rstrip('/')}/{base.upper()}"
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(endpoint)

        if response.status_code != 200:
            logger.warning("rate source returned status %d", response.status_code)
            return None

        snapshot = parse_rates(response.json(), base)
        if snapshot is None:
            logger.warning("rate source returned no usable rates")
            return None

        logger.info(
            "rates fetched: base=%s currencies=%d as_of=%s",
            snapshot.base_currency, len(snapshot.rates), snapshot.as_of,
        )
        return snapshot

    except (httpx.HTTPError, ValueError) as exc:
        logger.warning(
            "rate fetch failed (%s: %s) — caller should use fallback rates",
            type(exc).__name__, exc,
        )
        return None
