"""
Simulated server round trips.

Matching and ride tracking have no real backend. Each simulated call runs on
a single background worker after a fixed delay and hands back a Future, so a
real backend call can replace it without changing the callers.
"""

import time
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from cabshare import config

logger = logging.getLogger(__name__)


class Simulator:
    """Runs simulated calls one at a time after a delay."""

    def __init__(self, scale: float = None):
        self.scale = config.SIMULATION_SCALE if scale is None else scale
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cabshare-sim")

    def sleep(self, seconds: float) -> None:
        """Wait for a simulated delay, scaled by the configured factor."""
        delay = seconds * self.scale
        if delay > 0:
            time.sleep(delay)

    def submit(self, fn: Callable[..., Any], *args, delay: float = 0, **kwargs) -> Future:
        """
        Schedule fn to run after delay seconds.

        Args:
            fn: Callable producing the simulated response
            delay: Simulated latency in seconds (before scaling)

        Returns:
            Future: Resolves to fn's return value, or raises what fn raised
        """
        def run():
            self.sleep(delay)
            return fn(*args, **kwargs)

        logger.info(f"Simulating {getattr(fn, '__name__', 'call')} with {delay}s delay")
        return self._executor.submit(run)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
