"""
Tests for decoding simulateTransaction responses. No network access.
"""

from __future__ import annotations

import pytest

from ionic_solana_sponsor.data_source.rpc.rpc_simulator import SolanaRPCSimulator
from ionic_solana_sponsor.message.sponsor_errors import SimulationFailed


@pytest.fixture
def simulator() -> SolanaRPCSimulator:
    return SolanaRPCSimulator("http://localhost:8899")


def test_successful_simulation(simulator):
    payload = (
        b'{"jsonrpc":"2.0","id":1,"result":{"context":{"slot":312},'
        b'"value":{"err":null,"logs":["Program 11111111111111111111111111111111 success"],'
        b'"unitsConsumed":150,"accounts":null,"returnData":null}}}'
    )
    outcome = simulator.decode_simulation(payload)
    assert outcome.ok is True
    assert outcome.slot == 312
    assert outcome.unitsConsumed == 150
    assert outcome.logs == ["Program 11111111111111111111111111111111 success"]


def test_failed_simulation_is_an_outcome(simulator):
    payload = (
        b'{"jsonrpc":"2.0","id":1,"result":{"context":{"slot":7},'
        b'"value":{"err":{"InstructionError":[0,{"Custom":1}]},"logs":null}}}'
    )
    outcome = simulator.decode_simulation(payload)
    assert outcome.ok is False
    assert outcome.err == {"InstructionError": [0, {"Custom": 1}]}
    assert outcome.logs == []


def test_rpc_error_raises(simulator):
    payload = b'{"jsonrpc":"2.0","id":1,"error":{"code":-32602,"message":"invalid transaction"}}'
    with pytest.raises(SimulationFailed) as exc_info:
        simulator.decode_simulation(payload)
    assert exc_info.value.detail["code"] == -32602


def test_garbage_response_raises(simulator):
    with pytest.raises(SimulationFailed):
        simulator.decode_simulation(b"<html>bad gateway</html>")


def test_rpc_url_required(monkeypatch):
    monkeypatch.delenv("SOLANA_RPC_URL", raising=False)
    with pytest.raises(ValueError, match="SOLANA_RPC_URL"):
        SolanaRPCSimulator()


async def test_simulate_requires_connection(simulator):
    with pytest.raises(RuntimeError):
        await simulator.simulate(b"\x00")
