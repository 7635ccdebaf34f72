# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


import aiohttp
import asyncio
import base64
import msgspec
import os
from typing import Any, Dict, List, Optional
from loguru import logger
from dotenv import load_dotenv

from ionic_solana_sponsor.data_source.data_source import BaseSimulationSource
from ionic_solana_sponsor.data_source.rpc.model import SimulateTransactionResponse, SimulationOutcome
from ionic_solana_sponsor.message.sponsor_errors import SimulationFailed

load_dotenv()


class RPCRequest(msgspec.Struct):
    method: str
    params: List[Any]
    jsonrpc: str = "2.0"
    id: int = 1


class SolanaRPCSimulator(BaseSimulationSource):
    """Solana RPC simulation source implementation."""

    def __init__(self, rpc_url: Optional[str] = None, config: Optional[Dict[str, Any]] = None):
        """Initializes the Solana RPC simulation source."""
        super().__init__(config)
        self.rpc_url = rpc_url or os.getenv("SOLANA_RPC_URL")
        if not self.rpc_url:
            raise ValueError("RPC URL must be provided either as parameter or SOLANA_RPC_URL environment variable")
        self.timeout = aiohttp.ClientTimeout(total=self.config.get("timeout_seconds", 10))
        self.session: Optional[aiohttp.ClientSession] = None
        self.encoder = msgspec.json.Encoder()
        self.simulation_decoder = msgspec.json.Decoder(SimulateTransactionResponse)

    async def connect(self) -> None:
        """Establishes connection to the Solana RPC endpoint."""
        if not self.session:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
        self._connected = True
        logger.info(f"Connected to Solana RPC at {self.rpc_url}")

    async def disconnect(self) -> None:
        """Closes connection to the Solana RPC endpoint."""
        if self.session:
            await self.session.close()
            self.session = None
        self._connected = False

    async def _make_rpc_call(self, method: str, params: List[Any]) -> bytes:
        """Makes an RPC call to the Solana endpoint using msgspec."""
        if not self.session:
            raise RuntimeError("RPC client not connected")

        request = RPCRequest(method=method, params=params)
        payload_bytes = self.encoder.encode(request)

        headers = {"Content-Type": "application/json"}
        async with self.session.post(self.rpc_url, data=payload_bytes, headers=headers) as response:
            return await response.read()

    def decode_simulation(self, payload: bytes) -> SimulationOutcome:
        """Turns a raw simulateTransaction response into a SimulationOutcome."""
        try:
            rpc_response = self.simulation_decoder.decode(payload)
        except msgspec.DecodeError as e:
            raise SimulationFailed(f"Invalid simulateTransaction response: {e}") from e

        if rpc_response.is_error:
            raise SimulationFailed(
                f"RPC error {rpc_response.error.code}: {rpc_response.error.message}",
                code=rpc_response.error.code,
            )
        if rpc_response.result is None:
            raise SimulationFailed("Invalid response: 'result' field missing")

        value = rpc_response.result.value
        return SimulationOutcome(
            ok=value.err is None,
            err=value.err,
            logs=value.logs or [],
            unitsConsumed=value.unitsConsumed,
            slot=rpc_response.result.context.slot,
        )

    async def simulate(self, transaction: bytes) -> SimulationOutcome:
        """Simulates the sponsored transaction. Signatures are not verified since user slots may be empty."""
        encoded = base64.b64encode(transaction).decode("utf-8")
        try:
            result = await self._make_rpc_call("simulateTransaction", [encoded, {
                "encoding": "base64",
                "sigVerify": False,
                "replaceRecentBlockhash": False,
                "commitment": "confirmed",
            }])
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SimulationFailed(f"Simulation request failed: {type(e).__name__}: {e}") from e

        outcome = self.decode_simulation(result)
        if outcome.ok:
            logger.info(f"Simulation succeeded at slot {outcome.slot} using {outcome.unitsConsumed} units")
        else:
            logger.warning(f"Simulation failed at slot {outcome.slot}: {outcome.err}")
        return outcome

    async def get_slot(self) -> int:
        """Get the current slot."""
        result = await self._make_rpc_call("getSlot", [])
        rpc_response = msgspec.json.decode(result)  # Decode the response
        if "result" not in rpc_response:
            raise ValueError("Invalid response: 'result' field missing")
        return rpc_response["result"]

    async def health_check(self) -> bool:
        """Perform a health check on the RPC endpoint."""
        if not self.is_connected:
            return False

        try:
            await self.get_slot()
            return True
        except Exception as e:
            logger.error(e)
            return False
