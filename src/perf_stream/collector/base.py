"""Base interface for resource collectors and the metric record they emit."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


class CollectorStateError(RuntimeError):
    """Raised when a collector operation is invalid for its lifecycle state."""


@dataclass(frozen=True)
class Metric:
    """A single measurement produced by a collector."""

    name: str
    value: float
    timestamp: int
    type: str
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        # read-only copy
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape used by exporters."""
        return {
            "name": self.name,
            "value": self.value,
            "timestamp": self.timestamp,
            "type": self.type,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Metric:
        return cls(
            name=str(data["name"]),
            value=float(data["value"]),
            timestamp=int(data["timestamp"]),
            type=str(data["type"]),
            metadata=dict(data.get("metadata") or {}),
        )


class BaseCollector(abc.ABC):
    """Abstract base class for resource collectors.

    A collector is created stopped. :meth:`start` establishes whatever
    baseline it needs, :meth:`collect` may then be awaited any number of
    times, and :meth:`stop` releases the baseline again. Scheduling is left
    to the caller.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Collector name used in configuration and output."""

    @property
    @abc.abstractmethod
    def is_running(self) -> bool:
        """Whether :meth:`start` has been called without a matching :meth:`stop`."""

    @abc.abstractmethod
    async def start(self) -> None:
        """Begin collecting. Calling it on a running collector does nothing."""

    @abc.abstractmethod
    async def stop(self) -> None:
        """Stop collecting. Calling it on a stopped collector does nothing."""

    @abc.abstractmethod
    async def collect(self) -> list[Metric]:
        """Collect one batch of metrics.

        Raises :class:`CollectorStateError` if the collector is not running.
        """

    def to_dict(self, metrics: list[Metric]) -> list[dict[str, Any]]:
        """Serialize metrics to plain dictionaries."""
        return [m.to_dict() for m in metrics]
