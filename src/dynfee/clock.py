"""Process clock shared by the ledger, the fee model and the simulated pool."""

import time
from collections.abc import Callable

Clock = Callable[[], int]


def unix_now() -> int:
    """Current Unix time in whole seconds."""
    return int(time.time())
