# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""aiohttp application factory and entry point of the sponsor service."""
from __future__ import annotations

from typing import Iterable, Optional

import aiohttp_cors
from aiohttp import web
from loguru import logger

from ionic_solana_sponsor.api.middleware import (
    RateLimiter,
    error_middleware,
    rate_limit_middleware,
)
from ionic_solana_sponsor.api.routes import FEE_SPONSOR, SETTINGS, SIMULATOR, routes
from ionic_solana_sponsor.config.settings import Settings
from ionic_solana_sponsor.data_source.data_source import BaseSimulationSource
from ionic_solana_sponsor.data_source.rpc.rpc_simulator import SolanaRPCSimulator
from ionic_solana_sponsor.rewrite.fee_sponsor import FeeSponsor
from ionic_solana_sponsor.rewrite.sponsor_guard import SponsorGuard
from ionic_solana_sponsor.signing.credential import SponsorCredential


async def _connect_simulator(app: web.Application) -> None:
    await app[SIMULATOR].connect()


async def _disconnect_simulator(app: web.Application) -> None:
    await app[SIMULATOR].disconnect()


def setup_cors(app: web.Application, allowed_origins: Iterable[str]) -> None:
    """Answers preflight requests and decorates responses for the allowed origins on every route."""
    options = aiohttp_cors.ResourceOptions(
        allow_credentials=False,
        allow_headers=("Content-Type",),
        allow_methods=["GET", "POST"],
    )
    cors = aiohttp_cors.setup(app, defaults={origin: options for origin in allowed_origins})
    for route in list(app.router.routes()):
        cors.add(route)


def create_app(
        fee_sponsor: FeeSponsor,
        settings: Optional[Settings] = None,
        simulator: Optional[BaseSimulationSource] = None
) -> web.Application:
    """Builds the application. Rate limiting runs before error rendering; CORS headers are added to every response."""
    settings = settings or Settings()
    limiter = RateLimiter(settings.rate_limit_max_requests, settings.rate_limit_window_seconds)

    app = web.Application(middlewares=[
        rate_limit_middleware(limiter, settings.trust_forwarded_for),
        error_middleware,
    ])
    app[FEE_SPONSOR] = fee_sponsor
    app[SETTINGS] = settings

    if simulator is not None:
        app[SIMULATOR] = simulator
        app.on_startup.append(_connect_simulator)
        app.on_cleanup.append(_disconnect_simulator)

    app.add_routes(routes)
    setup_cors(app, settings.allowed_origins)
    return app


def build_app(settings: Settings) -> web.Application:
    credential = SponsorCredential.from_env()
    guard = SponsorGuard() if settings.reject_sponsor_debits else None
    simulator = SolanaRPCSimulator(settings.rpc_url) if settings.simulate_transactions else None

    logger.info(
        f"Sponsoring fees with {credential.public_key()} "
        f"(debit guard {'on' if guard else 'off'}, simulation {'on' if simulator else 'off'})")

    return create_app(FeeSponsor(credential, guard), settings, simulator)


def main() -> None:
    settings = Settings.from_env()
    if settings.log_file:
        logger.add(settings.log_file, rotation="10 MB")

    app = build_app(settings)
    logger.info(f"Listening on {settings.host}:{settings.port}")
    web.run_app(app, host=settings.host, port=settings.port, print=None)


if __name__ == "__main__":
    main()
