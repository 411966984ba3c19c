"""QueryMonitor - per-query timing, slow-query warnings and summary stats."""

from __future__ import annotations

import logging
import math
import time
from collections import Counter, deque
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from .config import MonitorConfig

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger("polyquery.monitor")


class QueryMonitor:
    """
    Records the duration and outcome of executed queries.

    Queries slower than ``slow_query_threshold_ms`` are counted and logged
    at WARNING. Only the last ``max_samples`` durations are kept for the
    average and p95 figures.
    """

    def __init__(self, config: MonitorConfig | None = None) -> None:
        self.config = config or MonitorConfig()
        self._durations: deque[float] = deque(maxlen=self.config.max_samples)
        self._commands: Counter[str] = Counter()
        self._total = 0
        self._failed = 0
        self._slow = 0

    def record(
        self,
        command: str,
        duration_ms: float,
        *,
        success: bool = True,
        query: Any = None,
    ) -> None:
        if not self.config.enabled:
            return
        self._total += 1
        self._commands[command] += 1
        self._durations.append(duration_ms)
        if not success:
            self._failed += 1
        if duration_ms >= self.config.slow_query_threshold_ms:
            self._slow += 1
            logger.warning(
                "Slow query (%s) took %.1fms: %s", command, duration_ms, query
            )

    @contextmanager
    def track(self, command: str, query: Any = None) -> Iterator[None]:
        """Time the enclosed block; failures are recorded and re-raised."""
        start = time.perf_counter()
        success = True
        try:
            yield
        except BaseException:
            success = False
            raise
        finally:
            elapsed = (time.perf_counter() - start) * 1000
            self.record(command, elapsed, success=success, query=query)

    def get_stats(self) -> dict[str, Any]:
        durations = sorted(self._durations)
        average = sum(durations) / len(durations) if durations else 0.0
        return {
            "total_queries": self._total,
            "failed_queries": self._failed,
            "slow_queries": self._slow,
            "average_ms": round(average, 3),
            "p95_ms": round(_percentile(durations, 95), 3),
            "max_ms": round(durations[-1], 3) if durations else 0.0,
            "by_command": dict(self._commands),
        }

    def reset(self) -> None:
        self._durations.clear()
        self._commands.clear()
        self._total = self._failed = self._slow = 0


def _percentile(sorted_values: list[float], pct: float) -> float:
    """Nearest-rank percentile of an already sorted list."""
    if not sorted_values:
        return 0.0
    rank = math.ceil(pct / 100 * len(sorted_values))
    return sorted_values[max(rank, 1) - 1]
