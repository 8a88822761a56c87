"""Timeout policy for index calls.

Every request to the search engine runs under a fixed per-call timeout. A
timeout surfaces as ``OperationTimeout`` and callers classify it like any
other backend failure of the same kind.
"""

from __future__ import annotations

import asyncio
import logging
import statistics
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationTimeout(Exception):
    """Raised when an operation times out."""

    def __init__(self, timeout: float, message: str = ""):
        self.timeout = timeout
        self.message = message or f"Operation timed out after {timeout}s"
        super().__init__(self.message)


@dataclass
class TimeoutConfig:
    """Timeout configuration."""
    timeout: float = 10.0  # seconds


@dataclass
class TimeoutMetrics:
    """Metrics for the timeout policy."""
    total_calls: int
    successful_calls: int
    timed_out_calls: int
    average_duration: float
    p95_duration: float
    current_timeout: float


class SimpleTimeout:
    """Fixed timeout policy for coroutine calls."""

    _WINDOW = 1000

    def __init__(self, config: Optional[TimeoutConfig] = None):
        self.config = config or TimeoutConfig()
        self._durations: List[float] = []
        self._timed_out = 0
        self._successful = 0

    async def execute(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Await ``operation(*args, **kwargs)`` bounded by the configured timeout."""
        start = time.perf_counter()

        try:
            result = await asyncio.wait_for(
                operation(*args, **kwargs),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            self._timed_out += 1
            logger.warning(f"Call to {getattr(operation, '__name__', operation)} timed out")
            raise OperationTimeout(self.config.timeout)

        self._durations.append(time.perf_counter() - start)
        if len(self._durations) > self._WINDOW:
            self._durations = self._durations[-self._WINDOW:]
        self._successful += 1
        return result

    def get_metrics(self) -> TimeoutMetrics:
        """Get current metrics."""
        if not self._durations:
            return TimeoutMetrics(
                total_calls=self._timed_out,
                successful_calls=0,
                timed_out_calls=self._timed_out,
                average_duration=0.0,
                p95_duration=0.0,
                current_timeout=self.config.timeout,
            )

        sorted_durations = sorted(self._durations)
        n = len(sorted_durations)

        return TimeoutMetrics(
            total_calls=self._successful + self._timed_out,
            successful_calls=self._successful,
            timed_out_calls=self._timed_out,
            average_duration=statistics.mean(sorted_durations),
            p95_duration=sorted_durations[int(n * 0.95)] if n >= 20 else sorted_durations[-1],
            current_timeout=self.config.timeout,
        )
