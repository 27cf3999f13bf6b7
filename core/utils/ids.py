"""
Centralized trade ID and timestamp generation.

Trade IDs are time-prefixed so the log sorts chronologically when read raw:
``trade-<epoch_ms>-<4 base-36 chars>``.
"""

from __future__ import annotations

import secrets
import time
from typing import Optional

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _random_suffix(length: int = 4) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_trade_id(timestamp_ms: Optional[int] = None) -> str:
    """Generate a trade ID for the given (or current) timestamp."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return f"trade-{timestamp_ms}-{_random_suffix()}"
