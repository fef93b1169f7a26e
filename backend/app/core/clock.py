"""Wall-clock access for the request and worker layers.

Services never read the clock themselves; callers pass ``now`` explicitly.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone

from app.core.config import ONE_DAY_MS


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return time.time_ns() // 1_000_000


def day_start(now: int) -> int:
    """UTC midnight at or before ``now``."""
    return now - (now % ONE_DAY_MS)


def next_utc_midnight(now: int) -> int:
    return day_start(now) + ONE_DAY_MS


def to_iso(epoch_ms: int | None) -> str | None:
    if epoch_ms is None:
        return None
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()
