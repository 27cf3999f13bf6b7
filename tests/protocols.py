"""
Service protocols for runtime interface validation.
Use typing.runtime_checkable to validate service implementations.
"""

from decimal import Decimal
from typing import Protocol, runtime_checkable, Dict, Any, Mapping


@runtime_checkable
class ServiceLifecycleProtocol(Protocol):
    """Protocol for basic service lifecycle methods"""

    async def start(self) -> Any:
        """Start the service"""
        ...

    async def stop(self) -> None:
        """Stop the service"""
        ...


@runtime_checkable
class HealthCheckProtocol(Protocol):
    """Protocol for services that provide health checks"""

    async def health_check(self) -> Dict[str, Any]:
        """Return service health status"""
        ...


@runtime_checkable
class LedgerProtocol(ServiceLifecycleProtocol, HealthCheckProtocol, Protocol):
    """Surface a UI layer relies on for the demo ledger"""

    def execute_trade(self, trade_input: Mapping[str, Any]) -> Any:
        """Execute one trade against the latest snapshot"""
        ...

    def portfolio_value(self, live_prices: Mapping[str, Any]) -> Decimal:
        """Market value of all holdings"""
        ...

    async def reset(self) -> Any:
        """Restore the seed snapshot"""
        ...
