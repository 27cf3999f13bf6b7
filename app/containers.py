# DI container for the demo ledger
from dependency_injector import containers, providers
import redis.asyncio as redis

from core.config.settings import Settings
from services.demo_ledger.persistence import LedgerStore
from services.demo_ledger.service import DemoLedgerService


class AppContainer(containers.DeclarativeContainer):
    """Application dependency injection container"""

    # Configuration
    settings = providers.Singleton(Settings)

    # Redis client backing the ledger mirror
    redis_client = providers.Singleton(
        redis.from_url,
        settings.provided.redis.url,
        decode_responses=True,
    )

    ledger_store = providers.Singleton(
        LedgerStore,
        settings=settings,
        redis_client=redis_client,
    )

    # Market-data collaborator's last-known price lookup; None disables fallback
    fallback_price = providers.Object(None)

    # The single authoritative ledger for this process
    ledger_service = providers.Singleton(
        DemoLedgerService,
        settings=settings,
        store=ledger_store,
        fallback_price=fallback_price,
    )
