from gamesearch.core.resilience.timeout import (
    OperationTimeout,
    SimpleTimeout,
    TimeoutConfig,
    TimeoutMetrics,
)

__all__ = [
    "OperationTimeout",
    "SimpleTimeout",
    "TimeoutConfig",
    "TimeoutMetrics",
]
