# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Abstract base class for sources that simulate sponsored transactions before they are returned."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ionic_solana_sponsor.data_source.rpc.model import SimulationOutcome


class BaseSimulationSource(ABC):
    """Abstract base class for all simulation sources of the sponsor service.

       Each simulation source should inherit this class.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initializes the simulation source with optional configuration."""
        self.config = config or {}
        self._connected = False

    @abstractmethod
    async def connect(self) -> None:
        """Establishes connection to the simulation source."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Closes connection to the simulation source."""
        pass

    @abstractmethod
    async def simulate(self, transaction: bytes) -> SimulationOutcome:
        """Simulates a serialized transaction without verifying signatures."""
        pass

    @property
    def is_connected(self) -> bool:
        """Checks if the simulation source is connected."""
        return self._connected

    async def health_check(self) -> bool:
        """Performs a health check on the simulation source."""
        return self.is_connected
