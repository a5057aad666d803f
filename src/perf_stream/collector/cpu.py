"""CPU time collector for the current process."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

import psutil

from ..config import PerfStreamConfig
from .base import BaseCollector, CollectorStateError, Metric

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CpuUsage:
    """User and system CPU time, in microseconds."""

    user: int
    system: int

    def __sub__(self, other: CpuUsage) -> CpuUsage:
        return CpuUsage(user=self.user - other.user, system=self.system - other.system)


def read_process_cpu_usage() -> CpuUsage:
    """Return the cumulative CPU time consumed by this process."""
    times = psutil.Process().cpu_times()
    return CpuUsage(user=round(times.user * 1_000_000), system=round(times.system * 1_000_000))


class CpuCollector(BaseCollector):
    """Measures process CPU utilization over a fixed sampling window.

    Each :meth:`collect` call sleeps for ``cpu_profiling_duration_ms`` and
    reports the user and system time spent during that window as a
    percentage of the window length::

        collector = CpuCollector(PerfStreamConfig(cpu_profiling_duration_ms=500))
        await collector.start()
        metrics = await collector.collect()
        await collector.stop()

    *usage_reader* returns the cumulative :class:`CpuUsage` of the process and
    defaults to :func:`read_process_cpu_usage`.
    """

    def __init__(
        self,
        config: PerfStreamConfig,
        usage_reader: Callable[[], CpuUsage] | None = None,
    ) -> None:
        self._config = config
        self._read_usage = usage_reader or read_process_cpu_usage
        self._running = False
        self._last_usage: CpuUsage | None = None

    @property
    def name(self) -> str:
        return "cpu"

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_usage(self) -> CpuUsage | None:
        """Baseline the next :meth:`collect` call measures from."""
        return self._last_usage

    async def start(self) -> None:
        if self._running:
            return
        self._last_usage = self._read_usage()
        self._running = True
        logger.debug("CpuCollector started (window=%gms)", self._config.cpu_profiling_duration_ms)

    async def stop(self) -> None:
        if not self._running:
            return
        self._last_usage = None
        self._running = False
        logger.debug("CpuCollector stopped")

    async def collect(self) -> list[Metric]:
        if not self._running:
            raise CollectorStateError("Collector must be started before collecting metrics")

        duration_ms = self._config.cpu_profiling_duration_ms
        window_start = self._read_usage()
        if self._last_usage is not None:
            since_last = window_start - self._last_usage
            logger.debug(
                "CPU time since last sample: user=%dus system=%dus",
                since_last.user,
                since_last.system,
            )

        await asyncio.sleep(duration_ms / 1000)

        delta = self._read_usage() - window_start
        timestamp = int(time.time() * 1000)

        # baseline for the next call, independent of this window's delta;
        # left cleared if stop() ran during the window
        if self._running:
            self._last_usage = self._read_usage()

        total_us = duration_ms * 1000
        return [
            Metric(
                name="cpu.user",
                value=(delta.user / total_us) * 100,
                timestamp=timestamp,
                type="cpu",
                metadata={"unit": "percent", "raw": delta.user, "duration": duration_ms},
            ),
            Metric(
                name="cpu.system",
                value=(delta.system / total_us) * 100,
                timestamp=timestamp,
                type="cpu",
                metadata={"unit": "percent", "raw": delta.system, "duration": duration_ms},
            ),
        ]
