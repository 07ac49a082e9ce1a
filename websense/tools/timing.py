from __future__ import annotations

import time
from typing import Callable


def create_timer() -> Callable[[], int]:
    """Start a monotonic timer; calling the result returns elapsed milliseconds."""
    started = time.monotonic()

    def elapsed_ms() -> int:
        return int((time.monotonic() - started) * 1000)

    return elapsed_ms


def format_duration(ms: int) -> str:
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60000:
        return f"{ms / 1000:.1f}s"
    return f"{ms / 60000:.1f}m"
