from __future__ import annotations

import time
from typing import Any, Callable, Optional, Tuple


class Debouncer:
    """Coalesce bursts of calls into one call after a quiet period.

    ``trigger`` only records the latest arguments; ``poll`` runs the callback
    once the clock has been quiet for ``wait`` seconds since the last trigger.
    """

    def __init__(self, callback: Callable[..., Any], wait: float = 0.25, *, clock: Callable[[], float] = time.monotonic):
        self.callback = callback
        self.wait = wait
        self.clock = clock
        self._pending: Optional[Tuple[Any, ...]] = None
        self._last: float = 0.0

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def trigger(self, *args: Any) -> None:
        self._pending = args
        self._last = self.clock()

    def poll(self) -> bool:
        if self._pending is None or self.clock() - self._last < self.wait:
            return False
        args, self._pending = self._pending, None
        self.callback(*args)
        return True

