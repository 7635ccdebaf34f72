# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Service settings read from the environment (and a .env file when present).

- SOLANA_RPC_URL: RPC endpoint used for advisory simulation
- SIMULATE_TRANSACTIONS: simulate every sponsored transaction (default: false)
- BLOCK_ON_SIMULATION_FAILURE: fail the request when simulation fails (default: false)
- REJECT_SPONSOR_DEBITS: refuse instructions that spend from the sponsor (default: true)
- ALLOWED_ORIGINS: comma separated CORS origins (default: *)
- RATE_LIMIT_MAX_REQUESTS / RATE_LIMIT_WINDOW_SECONDS: per-client fixed window
- TRUST_FORWARDED_FOR: key rate limits on X-Forwarded-For; only behind a proxy that sets it (default: false)
- HOST / PORT: listen address
- LOG_FILE: optional rotating log file

The sponsor secret (SPONSOR_SECRET_KEY) is read by `SponsorCredential.from_env`
and never stored here.
"""
from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from msgspec import Struct, field

load_dotenv()

_TRUE = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


class Settings(Struct, frozen=True):
    rpc_url: Optional[str] = None

    simulate_transactions: bool = False

    block_on_simulation_failure: bool = False

    reject_sponsor_debits: bool = True

    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    rate_limit_max_requests: int = 60

    rate_limit_window_seconds: float = 60.0

    trust_forwarded_for: bool = False
    """Key rate limits on X-Forwarded-For; set only behind a proxy that overwrites it"""

    host: str = "0.0.0.0"

    port: int = 8080

    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> Settings:
        origins = [
            origin.strip()
            for origin in (os.getenv("ALLOWED_ORIGINS") or "*").split(",")
            if origin.strip()
        ]
        settings = cls(
            rpc_url=os.getenv("SOLANA_RPC_URL") or None,
            simulate_transactions=_env_flag("SIMULATE_TRANSACTIONS", False),
            block_on_simulation_failure=_env_flag("BLOCK_ON_SIMULATION_FAILURE", False),
            reject_sponsor_debits=_env_flag("REJECT_SPONSOR_DEBITS", True),
            allowed_origins=origins or ["*"],
            rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", 60),
            rate_limit_window_seconds=_env_float("RATE_LIMIT_WINDOW_SECONDS", 60.0),
            trust_forwarded_for=_env_flag("TRUST_FORWARDED_FOR", False),
            host=os.getenv("HOST") or "0.0.0.0",
            port=_env_int("PORT", 8080),
            log_file=os.getenv("LOG_FILE") or None,
        )
        if settings.simulate_transactions and not settings.rpc_url:
            raise ValueError("SIMULATE_TRANSACTIONS requires SOLANA_RPC_URL")
        return settings
