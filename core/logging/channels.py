"""
Logging channel definitions for the demo ledger.
Channels are bound onto structured events so records can be routed and filtered.
"""

from enum import Enum
from typing import Dict


class LogChannel(str, Enum):
    """Logging channels for different components."""

    APPLICATION = "application"  # General application logs
    TRADING = "trading"          # Trade validation and execution
    PERSISTENCE = "persistence"  # Storage load/save
    AUDIT = "audit"              # Accepted trades and resets
    ERROR = "error"              # Error logs


# Component name -> channel mapping
COMPONENT_CHANNELS: Dict[str, LogChannel] = {
    "executor": LogChannel.TRADING,
    "ledger_service": LogChannel.TRADING,
    "ledger_store": LogChannel.PERSISTENCE,
    "state_manager": LogChannel.PERSISTENCE,
    "audit": LogChannel.AUDIT,
}


def get_channel_for_component(component: str) -> LogChannel:
    """Get the appropriate logging channel for a component."""
    return COMPONENT_CHANNELS.get(component, LogChannel.APPLICATION)
