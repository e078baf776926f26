"""
Remit — local runner.

Starts the FastAPI tool/transfer API in one process. Real Wise transfers are
used only when REMIT_WISE_ENABLED=true and the API key and profile id are
set; otherwise every transfer is simulated.

Usage:
    python run.py
    PORT=8080 python run.py      # override port (default 8000)
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import structlog
import uvicorn

# ── Logging setup ──────────────────────────────────────────────────────────────
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    stream=sys.stdout,
)

log = structlog.get_logger("remit.run")


async def main() -> None:
    from api.app import build_services, create_app, _make_provider
    from config.settings import settings

    provider = _make_provider(settings)
    log.info(
        "remit runner starting",
        environment=settings.environment,
        provider="wise" if provider is not None else "simulated",
        source_currency=settings.source_currency,
    )
    app = create_app(build_services(settings, provider=provider))

    port = int(os.environ.get("PORT", 8000))
    config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
        loop="none",
    )
    server = uvicorn.Server(config)
    log.info("server starting", port=port)

    try:
        await server.serve()
    finally:
        log.info("remit runner stopped")


if __name__ == "__main__":
    asyncio.run(main())
