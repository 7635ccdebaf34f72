"""
Tests for environment-driven settings.
"""

from __future__ import annotations

import pytest

from ionic_solana_sponsor.config.settings import Settings

ENV_VARS = [
    "SOLANA_RPC_URL", "SIMULATE_TRANSACTIONS", "BLOCK_ON_SIMULATION_FAILURE", "REJECT_SPONSOR_DEBITS",
    "ALLOWED_ORIGINS", "RATE_LIMIT_MAX_REQUESTS", "RATE_LIMIT_WINDOW_SECONDS", "TRUST_FORWARDED_FOR", "HOST", "PORT",
    "LOG_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env()
    assert settings.rpc_url is None
    assert settings.simulate_transactions is False
    assert settings.reject_sponsor_debits is True
    assert settings.allowed_origins == ["*"]
    assert settings.rate_limit_max_requests == 60
    assert settings.trust_forwarded_for is False
    assert settings.port == 8080


def test_values_from_env(monkeypatch):
    monkeypatch.setenv("SOLANA_RPC_URL", "http://localhost:8899")
    monkeypatch.setenv("SIMULATE_TRANSACTIONS", "true")
    monkeypatch.setenv("REJECT_SPONSOR_DEBITS", "0")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://app.example, https://wallet.example")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "5")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_SECONDS", "1.5")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("TRUST_FORWARDED_FOR", "true")

    settings = Settings.from_env()

    assert settings.rpc_url == "http://localhost:8899"
    assert settings.simulate_transactions is True
    assert settings.reject_sponsor_debits is False
    assert settings.allowed_origins == ["https://app.example", "https://wallet.example"]
    assert settings.rate_limit_max_requests == 5
    assert settings.rate_limit_window_seconds == 1.5
    assert settings.port == 9000
    assert settings.trust_forwarded_for is True


def test_simulation_requires_rpc_url(monkeypatch):
    monkeypatch.setenv("SIMULATE_TRANSACTIONS", "yes")
    with pytest.raises(ValueError, match="SOLANA_RPC_URL"):
        Settings.from_env()


def test_invalid_integer(monkeypatch):
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(ValueError, match="PORT"):
        Settings.from_env()
