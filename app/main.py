# app/main.py

from typing import Optional

from core.logging import configure_logging, get_logger
from app.containers import AppContainer
from services.demo_ledger.service import DemoLedgerService


class LedgerApplication:
    """Owns the container and the ledger lifecycle for a UI host.

    The host creates one instance per session, awaits ``startup()`` and then
    passes ``ledger`` to its screens instead of looking it up globally.
    """

    def __init__(self, container: Optional[AppContainer] = None):
        self.container = container or AppContainer()
        self.settings = self.container.settings()
        configure_logging(self.settings)
        self.logger = get_logger("demo_ledger.main", component="application")
        self.ledger: DemoLedgerService = self.container.ledger_service()

    async def startup(self) -> DemoLedgerService:
        """Load persisted state; trades before this completes are never written."""
        self.logger.info("Starting demo ledger application",
                         environment=self.settings.environment.value,
                         namespace=self.settings.ledger.namespace)
        await self.ledger.initialize()
        health = await self.ledger.health_check()
        if not health.get("redis_connected"):
            self.logger.warning("Ledger storage unreachable, changes will not survive a restart",
                                error=health.get("error"))
        return self.ledger

    async def shutdown(self) -> None:
        self.logger.info("Shutting down demo ledger application")
        await self.ledger.shutdown()
