# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Response models for the RPC simulation source."""

from typing import Generic, TypeVar, Any, Optional
from msgspec import Struct, field

T = TypeVar('T')


class RPCError(Struct):
    """RPC error structure."""
    code: int
    message: str
    data: Any = None


class Response(Struct, Generic[T]):
    """Generic RPC response wrapper."""
    jsonrpc: str
    id: int
    result: Optional[T] = None
    error: Optional[RPCError] = None

    @property
    def is_success(self) -> bool:
        """Check if response is successful."""
        return self.error is None

    @property
    def is_error(self) -> bool:
        """Check if response has error."""
        return self.error is not None


class RpcContext(Struct):
    slot: int


class SimulationValue(Struct):
    err: Any = None
    """Transaction error as returned by the cluster, null on success"""

    logs: Optional[list[str]] = None

    unitsConsumed: Optional[int] = None

    accounts: Any = None

    returnData: Any = None


class SimulationResult(Struct):
    context: RpcContext

    value: SimulationValue


# Typed response for simulateTransaction
SimulateTransactionResponse = Response[SimulationResult]


class SimulationOutcome(Struct):
    """Advisory simulation result attached to a sponsorship response."""
    ok: bool
    err: Any = None
    logs: list[str] = field(default_factory=list)
    unitsConsumed: Optional[int] = None
    slot: Optional[int] = None
