"""Base interface for exporters of flushed metric batches."""

from __future__ import annotations

import abc

from ..collector.base import Metric


class BaseExporter(abc.ABC):
    """Abstract base for exporters that receive flushed metric batches.

    Exporters are callables so they can be registered directly as
    ``"data"`` listeners on a :class:`~perf_stream.stream.MetricsStream`.
    """

    @abc.abstractmethod
    def export(self, metrics: list[Metric]) -> None:
        """Export a batch of metrics."""

    @abc.abstractmethod
    def shutdown(self) -> None:
        """Flush and release resources."""

    def __call__(self, metrics: list[Metric]) -> None:
        self.export(metrics)
