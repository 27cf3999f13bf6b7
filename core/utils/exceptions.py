# Structured exception hierarchy for the demo ledger

from typing import Dict, Any, Optional
from datetime import datetime, timezone


class LedgerException(Exception):
    """Base exception for all demo ledger specific errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)


class TransientError(LedgerException):
    """Base class for errors that may clear up on a later attempt"""

    def __init__(self, message: str, retry_count: int = 0, max_retries: int = 3,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.retry_count = retry_count
        self.max_retries = max_retries
        self.retryable = retry_count < max_retries


class PermanentError(LedgerException):
    """Base class for errors that will not clear up on retry"""
    pass


# Infrastructure Errors
class InfrastructureError(TransientError):
    """Base class for infrastructure failures"""
    pass


class RedisError(InfrastructureError):
    """Redis connection or operation failures"""

    def __init__(self, message: str, operation: str, key: Optional[str] = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.key = key


class PersistenceReadError(InfrastructureError):
    """A persisted ledger field could not be read or parsed"""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field


class PersistenceWriteError(InfrastructureError):
    """The ledger snapshot could not be written"""

    def __init__(self, message: str, operation: str = "save", **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation


# Configuration Errors
class ConfigurationError(PermanentError):
    """Configuration validation errors"""

    def __init__(self, message: str, config_field: str, config_value: Any,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.config_field = config_field
        self.config_value = config_value
