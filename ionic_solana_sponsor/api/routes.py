# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Sponsorship endpoints."""
from __future__ import annotations

import base64
import binascii
from typing import Any, Optional

import msgspec
from aiohttp import web
from loguru import logger

from ionic_solana_sponsor.api.middleware import json_response
from ionic_solana_sponsor.config.settings import Settings
from ionic_solana_sponsor.data_source.data_source import BaseSimulationSource
from ionic_solana_sponsor.message.sponsor_errors import DecodeError, SimulationFailed
from ionic_solana_sponsor.rewrite.fee_sponsor import FeeSponsor, SponsoredTransaction

FEE_SPONSOR = web.AppKey("fee_sponsor", FeeSponsor)
SETTINGS = web.AppKey("settings", Settings)
SIMULATOR = web.AppKey("simulator", BaseSimulationSource)

routes = web.RouteTableDef()


class SponsorRequest(msgspec.Struct):
    transaction: Optional[str] = None
    """Base64 encoded transaction"""


async def read_transaction(request: web.Request) -> bytes:
    try:
        payload = msgspec.json.decode(await request.read(), type=SponsorRequest)
    except msgspec.DecodeError as e:
        raise DecodeError(f"Invalid request body: {e}") from e

    if not payload.transaction:
        raise web.HTTPBadRequest(reason="Missing transaction")

    try:
        return base64.b64decode(payload.transaction, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError("Transaction is not valid base64") from e


async def attach_simulation(request: web.Request, sponsored: SponsoredTransaction, body: dict[str, Any]) -> None:
    """Adds the advisory simulation outcome; raises only when the service blocks on failures."""
    simulator = request.app.get(SIMULATOR)
    if simulator is None:
        return

    block = request.app[SETTINGS].block_on_simulation_failure
    try:
        outcome = await simulator.simulate(sponsored.transaction)
    except SimulationFailed as e:
        if block:
            raise
        logger.warning(f"Simulation unavailable for {sponsored.sponsorSignature}: {e.message}")
        body["simulation"] = {"ok": False, "error": e.message}
        return

    if not outcome.ok and block:
        raise SimulationFailed("Sponsored transaction failed simulation", err=outcome.err, logs=outcome.logs)
    body["simulation"] = msgspec.to_builtins(outcome)


@routes.post("/api/transfer")
async def transfer(request: web.Request) -> web.Response:
    """Makes the sponsor the fee payer of the submitted transaction and co-signs it."""
    raw = await read_transaction(request)
    sponsored = request.app[FEE_SPONSOR].sponsor(raw)
    body = sponsored.to_response()
    await attach_simulation(request, sponsored, body)
    return json_response(body)


@routes.post("/api/sponsor-transaction")
async def sponsor_transaction(request: web.Request) -> web.Response:
    """Co-signs a transaction that already names the sponsor as fee payer."""
    raw = await read_transaction(request)
    sponsored = request.app[FEE_SPONSOR].cosign(raw)
    body = sponsored.to_response()
    await attach_simulation(request, sponsored, body)
    return json_response(body)


@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    fee_sponsor = request.app[FEE_SPONSOR]
    sponsor_key = fee_sponsor.sponsor_key
    body: dict[str, Any] = {"status": "ok", "sponsor": str(sponsor_key) if sponsor_key is not None else None}
    simulator = request.app.get(SIMULATOR)
    if simulator is not None:
        body["rpc"] = await simulator.health_check()
    return json_response(body)
