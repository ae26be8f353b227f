"""Wall-clock source shared by presence, cursors and sync events."""

import time
from collections.abc import Callable

Clock = Callable[[], float]


def wall_clock() -> float:
    """Return seconds since the epoch."""
    return time.time()
