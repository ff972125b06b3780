from __future__ import annotations

import time
from datetime import datetime, timezone

import psutil

from valhalla_api.models.schemas import MemoryUsage


_BYTES_PER_MB = 1024 * 1024


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-01T00:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def process_uptime() -> float:
    """Seconds since the current process started."""
    started = psutil.Process().create_time()
    return max(0.0, time.time() - started)


def memory_usage() -> MemoryUsage:
    info = psutil.Process().memory_info()
    return MemoryUsage(
        used=round(info.rss / _BYTES_PER_MB),
        total=round(info.vms / _BYTES_PER_MB),
    )
