"""
Global configuration for the Remit engine.

All values are read from environment variables (prefixed REMIT_).
Defaults are safe for local development against the Wise sandbox; override in
production via .env or secrets manager.
"""

from enum import Enum
from pydantic_settings import BaseSettings, SettingsConfigDict


class Frequency(str, Enum):
    WEEKLY    = "weekly"
    BIWEEKLY  = "biweekly"
    MONTHLY   = "monthly"
    QUARTERLY = "quarterly"


class UnknownFrequencyPolicy(str, Enum):
    REPEAT = "repeat"   # keep emitting the start date
    REJECT = "reject"   # raise ValueError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="REMIT_", env_file=".env")

    # "sandbox" | "production"; production disables placeholder bank details
    environment: str = "sandbox"
    source_currency: str = "USD"

    # ── Transfer limits (source currency) ─────────────────────────────────
    per_transaction_limit: float = 5_000
    daily_limit: float = 10_000
    monthly_limit: float = 50_000

    # ── Fees ──────────────────────────────────────────────────────────────
    fee_standard_rate: float = 0.015              # 1.5% of the send amount
    fee_min: float = 2.99
    fee_max: float = 50.0

    # ── Exchange rates ────────────────────────────────────────────────────
    rates_url: str = "https://api.exchangerate-api.com/v4/latest"
    rates_cache_ttl_sec: int = 3600
    rates_timeout_sec: float = 10.0

    # ── Wise integration ──────────────────────────────────────────────────
    # Feature flag, off by default. Set REMIT_WISE_ENABLED=true to route
    # transfers through the provider instead of the local simulation.
    wise_enabled: bool = False
    wise_api_key: str = ""
    wise_profile_id: str = ""
    wise_api_url: str = "https://api.sandbox.transferwise.tech"
    wise_timeout_sec: float = 30.0
    wise_transfer_reference: str = "Remit transfer"

    # ── Lifecycle simulation ──────────────────────────────────────────────
    status_advance_probability: float = 0.6       # chance a status check moves one step
    unknown_frequency_policy: UnknownFrequencyPolicy = UnknownFrequencyPolicy.REPEAT

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def wise_configured(self) -> bool:
        return self.wise_enabled and bool(self.wise_api_key) and bool(self.wise_profile_id)


settings = Settings()
