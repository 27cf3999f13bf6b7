# Structured logging with channel support
import sys
import logging
import structlog
from typing import Optional, Dict, Any

from core.config.settings import Settings
from .channels import LogChannel, get_channel_for_component

# Global flag to prevent duplicate logging configuration
_logging_configured = False

_DEFAULT_REDACT_KEYS = {
    "authorization", "access_token", "refresh_token", "api_key", "password", "secret", "token",
}


def _standard_context_processor(settings: Settings):
    """Bind standard context fields once from settings."""
    def add_standard_context(logger, name, event_dict):
        event_dict.setdefault("service", settings.app_name)
        event_dict.setdefault("env", settings.environment.value)
        event_dict.setdefault("version", settings.version)
        return event_dict
    return add_standard_context


def _redaction_processor(settings: Settings):
    """Redact sensitive fields from event dict recursively."""
    keys_to_redact = {k.lower() for k in (settings.logging.redact_keys or _DEFAULT_REDACT_KEYS)}

    def _redact(obj):
        if isinstance(obj, dict):
            out = {}
            for k, v in obj.items():
                if isinstance(k, str) and k.lower() in keys_to_redact:
                    out[k] = "[REDACTED]"
                else:
                    out[k] = _redact(v)
            return out
        if isinstance(obj, list):
            return [_redact(v) for v in obj]
        return obj

    def redact_sensitive(logger, name, event_dict):
        return _redact(event_dict)
    return redact_sensitive


def normalize_error(logger, name, event_dict):
    """Add normalized error fields if an error is attached."""
    if "error" in event_dict and not event_dict.get("error_message"):
        event_dict["error_message"] = str(event_dict["error"])
    return event_dict


def configure_logging(settings: Settings) -> None:
    """Configure stdlib logging and structlog from settings."""
    global _logging_configured

    # Prevent duplicate configuration
    if _logging_configured:
        return

    level = (settings.logging.level or settings.log_level or "INFO").upper()

    if settings.logging.console_enabled:
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=level,
        )
    else:
        logging.getLogger().setLevel(level)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.logging.json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            _standard_context_processor(settings),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            normalize_error,
            structlog.processors.UnicodeDecoder(),
            _redaction_processor(settings),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    _logging_configured = True


def get_logger(name: str, component: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    logger = structlog.get_logger(name)
    if component:
        logger = logger.bind(
            component=component,
            channel=get_channel_for_component(component).value,
        )
    return logger


def get_channel_logger(name: str, channel: LogChannel) -> structlog.BoundLogger:
    """Get a logger for a specific channel."""
    return structlog.get_logger(name).bind(channel=channel.value)


def get_trading_logger_safe(name: str) -> structlog.BoundLogger:
    """Get a trading logger safely."""
    return get_channel_logger(name, LogChannel.TRADING)


def get_persistence_logger_safe(name: str) -> structlog.BoundLogger:
    """Get a persistence logger safely."""
    return get_channel_logger(name, LogChannel.PERSISTENCE)


def get_audit_logger_safe(name: str) -> structlog.BoundLogger:
    """Get an audit logger safely."""
    return get_channel_logger(name, LogChannel.AUDIT)


def get_error_logger_safe(name: str) -> structlog.BoundLogger:
    """Get an error logger safely."""
    return get_channel_logger(name, LogChannel.ERROR)


def bind_ledger_context(logger: structlog.BoundLogger, namespace: str,
                        stock_id: Optional[str] = None) -> structlog.BoundLogger:
    """Bind ledger context consistently to a logger.

    Adds the storage `namespace` and, optionally, the `stock_id` being traded.
    Returns a new BoundLogger with the context applied.
    """
    ctx: Dict[str, Any] = {"namespace": namespace}
    if stock_id:
        ctx["stock_id"] = stock_id
    return logger.bind(**ctx)


__all__ = [
    "LogChannel",
    "configure_logging",
    "get_logger",
    "get_channel_logger",
    "get_trading_logger_safe",
    "get_persistence_logger_safe",
    "get_audit_logger_safe",
    "get_error_logger_safe",
    "bind_ledger_context",
]
