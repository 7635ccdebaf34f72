"""
HTTP tests for the sponsor service using the aiohttp test client.
"""

from __future__ import annotations

import base64

import pytest
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from ionic_solana_sponsor.api.server import create_app
from ionic_solana_sponsor.config.settings import Settings
from ionic_solana_sponsor.data_source.data_source import BaseSimulationSource
from ionic_solana_sponsor.data_source.rpc.model import SimulationOutcome
from ionic_solana_sponsor.message.sponsor_errors import SimulationFailed
from ionic_solana_sponsor.rewrite.fee_sponsor import FeeSponsor
from ionic_solana_sponsor.utils.known_programs import SYSTEM_PROGRAM_ID

SYSTEM_PROGRAM = Pubkey.from_string(SYSTEM_PROGRAM_ID)


class FakeSimulator(BaseSimulationSource):
    def __init__(self, outcome: SimulationOutcome | None = None, error: SimulationFailed | None = None):
        super().__init__()
        self.outcome = outcome
        self.error = error
        self.simulated: list[bytes] = []

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def simulate(self, transaction: bytes) -> SimulationOutcome:
        self.simulated.append(transaction)
        if self.error is not None:
            raise self.error
        return self.outcome


@pytest.fixture
def user_transaction(user_keypair, make_transaction) -> str:
    raw = make_transaction([user_keypair.pubkey(), Pubkey.new_unique(), SYSTEM_PROGRAM],
                           instructions=[(2, [0, 1], (2).to_bytes(4, "little") + (5).to_bytes(8, "little"))])
    return base64.b64encode(raw).decode("utf-8")


@pytest.fixture
async def client(aiohttp_client, fee_sponsor):
    return await aiohttp_client(create_app(fee_sponsor, Settings()))


async def test_transfer_sponsors_transaction(client, credential, user_keypair, user_transaction):
    response = await client.post("/api/transfer", json={"transaction": user_transaction})

    assert response.status == 200
    body = await response.json()
    assert body["status"] == "ok"
    transaction = VersionedTransaction.from_bytes(base64.b64decode(body["transaction"]))
    assert transaction.message.account_keys[0] == credential.public_key()
    assert transaction.message.account_keys[1] == user_keypair.pubkey()
    assert body["sponsorSignature"] == str(transaction.signatures[0])
    assert "simulation" not in body


async def test_missing_transaction(client):
    response = await client.post("/api/transfer", json={})
    assert response.status == 400
    assert await response.json() == {"status": "error", "message": "Missing transaction"}


async def test_invalid_json_body(client):
    response = await client.post("/api/transfer", data=b"not json")
    assert response.status == 400
    assert (await response.json())["kind"] == "MALFORMED_TRANSACTION"


async def test_invalid_base64(client):
    response = await client.post("/api/transfer", json={"transaction": "***"})
    assert response.status == 400
    assert (await response.json())["kind"] == "MALFORMED_TRANSACTION"


async def test_method_not_allowed(client):
    response = await client.get("/api/transfer")
    assert response.status == 405
    assert await response.json() == {"status": "error", "message": "Method not allowed"}


async def test_unknown_route(client):
    response = await client.post("/api/unknown")
    assert response.status == 404
    assert (await response.json())["status"] == "error"


async def test_dangling_index_reported(client, user_keypair, make_transaction):
    raw = make_transaction([user_keypair.pubkey(), SYSTEM_PROGRAM], instructions=[(1, [0, 9], b"")])
    response = await client.post("/api/transfer", json={"transaction": base64.b64encode(raw).decode()})

    assert response.status == 400
    body = await response.json()
    assert body["kind"] == "DANGLING_ACCOUNT_INDEX"
    assert body["detail"]["index"] == 9


async def test_sponsor_transaction_requires_sponsor_fee_payer(client, user_transaction):
    response = await client.post("/api/sponsor-transaction", json={"transaction": user_transaction})
    assert response.status == 400
    assert (await response.json())["kind"] == "FEE_PAYER_MISMATCH"


async def test_sponsor_debit_forbidden(client, credential, user_keypair, make_transaction):
    raw = make_transaction([user_keypair.pubkey(), credential.public_key(), SYSTEM_PROGRAM],
                           instructions=[(2, [1, 0], (2).to_bytes(4, "little") + (1).to_bytes(8, "little"))])
    response = await client.post("/api/transfer", json={"transaction": base64.b64encode(raw).decode()})
    assert response.status == 403
    assert (await response.json())["kind"] == "SPONSOR_DEBIT_REJECTED"


async def test_health(client, credential):
    response = await client.get("/health")
    assert response.status == 200
    assert await response.json() == {"status": "ok", "sponsor": str(credential.public_key())}


async def test_health_without_credential(aiohttp_client):
    client = await aiohttp_client(create_app(FeeSponsor(None), Settings()))
    response = await client.get("/health")
    assert await response.json() == {"status": "ok", "sponsor": None}


async def test_cors_preflight(client):
    response = await client.options("/api/transfer", headers={
        "Origin": "https://app.example",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "Content-Type",
    })
    assert response.status == 200
    assert response.headers["Access-Control-Allow-Origin"] in ("*", "https://app.example")
    assert "POST" in response.headers["Access-Control-Allow-Methods"]


async def test_cors_headers_on_error_response(client):
    response = await client.post("/api/transfer", json={}, headers={"Origin": "https://app.example"})
    assert response.status == 400
    assert "Access-Control-Allow-Origin" in response.headers


async def test_cors_restricted_origin(aiohttp_client, fee_sponsor, user_transaction):
    client = await aiohttp_client(create_app(fee_sponsor, Settings(allowed_origins=["https://app.example"])))

    allowed = await client.post("/api/transfer", json={"transaction": user_transaction},
                                headers={"Origin": "https://app.example"})
    denied = await client.post("/api/transfer", json={"transaction": user_transaction},
                               headers={"Origin": "https://evil.example"})

    assert allowed.headers["Access-Control-Allow-Origin"] == "https://app.example"
    assert "Access-Control-Allow-Origin" not in denied.headers


async def test_rate_limit(aiohttp_client, fee_sponsor, user_transaction):
    client = await aiohttp_client(create_app(fee_sponsor, Settings(rate_limit_max_requests=2)))

    statuses = []
    for _ in range(3):
        response = await client.post("/api/transfer", json={"transaction": user_transaction})
        statuses.append(response.status)

    assert statuses == [200, 200, 429]
    assert await response.json() == {"status": "error", "message": "Too many requests"}


async def test_rate_limit_ignores_spoofed_forwarded_for(aiohttp_client, fee_sponsor, user_transaction):
    client = await aiohttp_client(create_app(fee_sponsor, Settings(rate_limit_max_requests=2)))

    statuses = []
    for i in range(3):
        response = await client.post("/api/transfer", json={"transaction": user_transaction},
                                     headers={"X-Forwarded-For": f"203.0.113.{i}"})
        statuses.append(response.status)

    assert statuses == [200, 200, 429]


async def test_rate_limit_keys_on_forwarded_for_behind_proxy(aiohttp_client, fee_sponsor, user_transaction):
    settings = Settings(rate_limit_max_requests=1, trust_forwarded_for=True)
    client = await aiohttp_client(create_app(fee_sponsor, settings))

    first = await client.post("/api/transfer", json={"transaction": user_transaction},
                              headers={"X-Forwarded-For": "203.0.113.1"})
    other = await client.post("/api/transfer", json={"transaction": user_transaction},
                              headers={"X-Forwarded-For": "203.0.113.2, 10.0.0.1"})
    repeat = await client.post("/api/transfer", json={"transaction": user_transaction},
                               headers={"X-Forwarded-For": "203.0.113.1"})

    assert [first.status, other.status, repeat.status] == [200, 200, 429]


async def test_simulation_attached(aiohttp_client, fee_sponsor, user_transaction):
    simulator = FakeSimulator(SimulationOutcome(ok=True, logs=["ok"], unitsConsumed=300, slot=10))
    client = await aiohttp_client(create_app(fee_sponsor, Settings(), simulator))

    response = await client.post("/api/transfer", json={"transaction": user_transaction})

    assert response.status == 200
    body = await response.json()
    assert body["simulation"]["ok"] is True
    assert body["simulation"]["unitsConsumed"] == 300
    assert simulator.simulated == [base64.b64decode(body["transaction"])]


async def test_simulation_failure_is_advisory(aiohttp_client, fee_sponsor, user_transaction):
    simulator = FakeSimulator(SimulationOutcome(ok=False, err="AccountNotFound"))
    client = await aiohttp_client(create_app(fee_sponsor, Settings(), simulator))

    response = await client.post("/api/transfer", json={"transaction": user_transaction})

    assert response.status == 200
    body = await response.json()
    assert body["status"] == "ok"
    assert body["simulation"] == {"ok": False, "err": "AccountNotFound", "logs": [], "unitsConsumed": None,
                                  "slot": None}


async def test_simulation_unreachable_is_advisory(aiohttp_client, fee_sponsor, user_transaction):
    simulator = FakeSimulator(error=SimulationFailed("Simulation request failed: ClientConnectorError"))
    client = await aiohttp_client(create_app(fee_sponsor, Settings(), simulator))

    response = await client.post("/api/transfer", json={"transaction": user_transaction})

    assert response.status == 200
    assert (await response.json())["simulation"]["ok"] is False


async def test_simulation_failure_blocks_when_configured(aiohttp_client, fee_sponsor, user_transaction):
    simulator = FakeSimulator(SimulationOutcome(ok=False, err="AccountNotFound"))
    client = await aiohttp_client(create_app(fee_sponsor, Settings(block_on_simulation_failure=True), simulator))

    response = await client.post("/api/transfer", json={"transaction": user_transaction})

    assert response.status == 502
    body = await response.json()
    assert body["kind"] == "SIMULATION_FAILED"
    assert body["detail"]["err"] == "AccountNotFound"
