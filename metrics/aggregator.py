"""
metrics/aggregator.py -- Process-wide request counters.

MetricsAggregator owns the only shared mutable state in the service:
request_count, error_count and start_time. It is created by the app lifespan
and reached through app.state, never as a module-level global.

Every mutation and every read takes the same lock, so concurrent increments
never lose updates and a snapshot never sees a half-applied reset.

Usage:
    metrics = MetricsAggregator()
    metrics.record_request()
    snap = metrics.snapshot()     # MetricsSnapshot, a copy
    metrics.reset()               # zero counts, restart uptime
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import psutil

logger = logging.getLogger("devops_api.metrics")


@dataclass
class MetricsState:
    request_count: int = 0
    error_count: int = 0
    start_time: float = 0.0


@dataclass(frozen=True)
class MetricsSnapshot:
    requests_total: int
    errors_total: int
    uptime_seconds: int
    memory_usage: dict[str, int]
    cpu_usage: dict[str, int]
    timestamp: str


def _process_memory(proc: psutil.Process) -> dict[str, int]:
    info = proc.memory_info()
    return {"rss": info.rss, "vms": info.vms}


def _process_cpu(proc: psutil.Process) -> dict[str, int]:
    # microseconds, same unit the original process.cpuUsage() reported
    times = proc.cpu_times()
    return {"user": int(times.user * 1_000_000), "system": int(times.system * 1_000_000)}


class MetricsAggregator:
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._state = MetricsState(start_time=clock())
        self._process = psutil.Process()

    def record_request(self) -> None:
        with self._lock:
            self._state.request_count += 1

    def record_error(self) -> None:
        with self._lock:
            self._state.error_count += 1

    def reset(self) -> None:
        with self._lock:
            self._state = MetricsState(start_time=self._clock())
        logger.info("Metrics reset")

    def snapshot(self) -> MetricsSnapshot:
        """Return a copy of the current counters plus process resource usage."""
        with self._lock:
            state = MetricsState(
                request_count=self._state.request_count,
                error_count=self._state.error_count,
                start_time=self._state.start_time,
            )
            now = self._clock()
        return MetricsSnapshot(
            requests_total=state.request_count,
            errors_total=state.error_count,
            uptime_seconds=max(0, math.floor(now - state.start_time)),
            memory_usage=_process_memory(self._process),
            cpu_usage=_process_cpu(self._process),
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        )
