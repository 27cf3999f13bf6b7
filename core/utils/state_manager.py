# Generic Redis-backed state management base class

import redis.asyncio as redis
from typing import Optional, Dict, Any, List, Mapping
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from core.config.settings import Settings
from core.utils.exceptions import RedisError


class BaseStateManager(ABC):
    """
    Base class for Redis-backed state management with namespace support.

    Provides common patterns for Redis operations including:
    - Connection management with automatic initialization
    - Namespace-based key generation
    - Consistent error handling with structured exceptions
    - Connection lifecycle management
    """

    def __init__(self, settings: Settings, redis_client=None):
        self.settings = settings
        self.redis_client = redis_client
        self.namespace: Optional[str] = None

    async def initialize(self, namespace: Optional[str] = None):
        """Initialize Redis client connection with optional namespace"""
        try:
            if self.redis_client is None:
                self.redis_client = redis.from_url(self.settings.redis.url, decode_responses=True)
            self.namespace = namespace
        except Exception as e:
            raise RedisError(f"Failed to initialize Redis connection: {e}", operation="initialize")

    def _get_key(self, field: str) -> str:
        """
        Generate standardized Redis key with namespace support.

        Args:
            field: Name of the stored field (e.g., 'balance', 'holdings')

        Returns:
            Namespaced Redis key string
        """
        base_key = f"{self._get_service_prefix()}:{field}"
        if self.namespace:
            return f"{self.namespace}:{base_key}"
        return base_key

    @abstractmethod
    def _get_service_prefix(self) -> str:
        """Return the service-specific prefix for Redis keys"""
        pass

    async def _ensure_client(self):
        if self.redis_client is None:
            await self.initialize(self.namespace)
        if self.redis_client is None:
            raise RedisError("Redis client is not available", operation="connect")

    async def _get_multiple_values(self, keys: List[str]) -> Dict[str, Optional[str]]:
        """Get multiple values from Redis in one round trip"""
        try:
            await self._ensure_client()
            if not keys:
                return {}
            values = await self.redis_client.mget(keys)
            return dict(zip(keys, values))
        except RedisError:
            raise
        except Exception as e:
            raise RedisError(f"Failed to get multiple keys: {e}", operation="mget")

    async def _set_multiple_values(self, mapping: Mapping[str, str]) -> None:
        """Set multiple values in Redis as a single write"""
        try:
            await self._ensure_client()
            if not mapping:
                return
            await self.redis_client.mset(dict(mapping))
        except RedisError:
            raise
        except Exception as e:
            raise RedisError(f"Failed to set multiple keys: {e}", operation="mset")

    async def _delete_keys(self, keys: List[str]) -> int:
        """Delete keys from Redis, returning how many existed"""
        try:
            await self._ensure_client()
            if not keys:
                return 0
            return await self.redis_client.delete(*keys)
        except RedisError:
            raise
        except Exception as e:
            raise RedisError(f"Failed to delete keys: {e}", operation="delete")

    async def close(self):
        """Close Redis connection"""
        try:
            if self.redis_client:
                await self.redis_client.aclose()
        except Exception as e:
            raise RedisError(f"Failed to close Redis connection: {e}", operation="close")

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on Redis connection"""
        try:
            await self._ensure_client()

            # Simple ping test
            await self.redis_client.ping()

            return {
                "redis_connected": True,
                "namespace": self.namespace,
                "service_prefix": self._get_service_prefix(),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        except Exception as e:
            return {
                "redis_connected": False,
                "error": str(e),
                "namespace": self.namespace,
                "service_prefix": self._get_service_prefix(),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
