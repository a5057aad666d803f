"""Buffered metric stream with size-triggered and manual flushing."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from ..collector.base import Metric
from ..config import PerfStreamConfig
from .events import EventEmitter

logger = logging.getLogger(__name__)

DATA_EVENT = "data"


class MetricsStream(EventEmitter):
    """Buffers metrics and hands them to ``"data"`` listeners in batches.

    :meth:`push` appends to the buffer and flushes once it holds at least
    ``metrics_buffer_size`` metrics. :meth:`flush` can also be called
    directly, e.g. on shutdown::

        stream = MetricsStream(PerfStreamConfig(metrics_buffer_size=1000))
        stream.on("data", exporter.export)
        stream.push(metrics)
        ...
        stream.flush()

    Every listener receives the same list, which is a copy of the buffer
    taken at flush time. Nothing is retained for listeners that register
    after a flush.
    """

    def __init__(self, config: PerfStreamConfig) -> None:
        super().__init__()
        self._config = config
        self._buffer: list[Metric] = []
        self._lock = threading.RLock()

    @property
    def threshold(self) -> int:
        return self._config.metrics_buffer_size

    @property
    def buffered(self) -> int:
        """Number of metrics waiting for the next flush."""
        return len(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    def push(self, metrics: Iterable[Metric]) -> None:
        """Append *metrics* in order, flushing if the threshold is reached."""
        incoming = list(metrics)
        with self._lock:
            self._buffer.extend(incoming)
            if len(self._buffer) >= self.threshold:
                self.flush()

    def flush(self) -> None:
        """Emit the buffered metrics as one batch and empty the buffer."""
        with self._lock:
            if not self._buffer:
                return
            batch = list(self._buffer)
            self._buffer.clear()
            logger.debug("Flushing %d metrics", len(batch))
            # listeners run under the lock; batches arrive in flush order
            self.emit(DATA_EVENT, batch)

    def clear(self) -> None:
        """Drop the buffered metrics without emitting them."""
        with self._lock:
            dropped = len(self._buffer)
            self._buffer.clear()
        if dropped:
            logger.debug("Discarded %d buffered metrics", dropped)
