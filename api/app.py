"""
FastAPI application factory for the Remit API.

Usage:
    uvicorn api.app:app --reload --port 8000
    python run.py
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from functools import partial

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import tools, transfers
from config.settings import Settings
from data.rate_source import fetch_latest_rates
from engine.orchestrator import TransferOrchestrator
from engine.provider import PaymentProvider
from engine.recipient_mapper import RecipientFieldMapper
from engine.recipients import RecipientBook
from engine.schedules import ScheduleManager
from engine.store import InMemoryRecipientStore, InMemoryScheduleStore, InMemoryTransferStore
from engine.tools import TransferTools
from services.corridor_registry import CorridorRegistry
from services.rate_provider import RateFetcher, RateProvider

log = logging.getLogger("remit.app")


@dataclass
class Services:
    orchestrator: TransferOrchestrator
    recipients: RecipientBook
    schedules: ScheduleManager
    tools: TransferTools


def build_services(
    config: Settings,
    provider: PaymentProvider | None = None,
    fetcher: RateFetcher | None = None,
    rng: random.Random | None = None,
) -> Services:
    """Wire stores, rate provider and engine components for one process."""
    corridors = CorridorRegistry()
    rates = RateProvider(
        fetcher or partial(fetch_latest_rates, url=config.rates_url, timeout=config.rates_timeout_sec),
        base_currency=config.source_currency,
        ttl_sec=config.rates_cache_ttl_sec,
    )
    recipient_store = InMemoryRecipientStore()

    orchestrator = TransferOrchestrator(
        rates,
        InMemoryTransferStore(),
        recipients=recipient_store,
        provider=provider,
        corridors=corridors,
        mapper=RecipientFieldMapper(),
        config=config,
        rng=rng,
    )
    recipients = RecipientBook(recipient_store, corridors)
    schedules  = ScheduleManager(InMemoryScheduleStore(), corridors, config)
    return Services(
        orchestrator=orchestrator,
        recipients=recipients,
        schedules=schedules,
        tools=TransferTools(orchestrator, recipients, schedules, config),
    )


def create_app(services: Services, lifespan=None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Service instances are stored on app.state so routers can retrieve
    them via request.app.state.<name>.
    """
    app = FastAPI(
        title="Remit API",
        version="1.0",
        lifespan=lifespan,
    )

    app.state.orchestrator = services.orchestrator
    app.state.tools        = services.tools

    # CORS: lock down in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    PREFIX = "/api/v1"
    app.include_router(tools.router,     prefix=PREFIX)
    app.include_router(transfers.router, prefix=PREFIX)

    return app


# ── Module-level app for `uvicorn api.app:app` ────────────────────────────────

def _make_provider(config: Settings) -> PaymentProvider | None:
    """WiseProvider when enabled and credentialed; otherwise every transfer is simulated."""
    if not config.wise_configured:
        if config.wise_enabled:
            log.warning("wise enabled but api key / profile id missing; running simulated")
        return None

    from engine.wise_client import WiseClient, WiseConfig
    from engine.wise_provider import WiseProvider

    log.info("wise provider active: env=%s url=%s", config.environment, config.wise_api_url)
    return WiseProvider(WiseClient(WiseConfig(
        api_key=config.wise_api_key,
        profile_id=config.wise_profile_id,
        base_url=config.wise_api_url,
        timeout_sec=config.wise_timeout_sec,
    )))


def _make_default_app() -> FastAPI:
    from config.settings import settings

    return create_app(build_services(settings, provider=_make_provider(settings)))


app = _make_default_app()
