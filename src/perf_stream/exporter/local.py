"""JSONL exporter for flushed metric batches."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import IO

from ..collector.base import Metric
from ..config import LocalExporterConfig
from .base import BaseExporter

logger = logging.getLogger(__name__)


class LocalExporter(BaseExporter):
    """Appends each flushed batch to ``<output_dir>/<prefix>-YYYY-MM-DD.jsonl``.

    The file follows the UTC date of the export call, so a long-running
    collector rolls over to a new file at midnight UTC. Lines use the
    :meth:`Metric.to_dict` wire shape and can be read back with
    :func:`read_metrics_file`.
    """

    def __init__(self, config: LocalExporterConfig) -> None:
        self._config = config
        self._output_dir = Path(config.output_dir)
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._day: date | None = None
        self._stream: IO[str] | None = None
        self._written = 0

    @property
    def records_written(self) -> int:
        """Total number of metrics written since construction."""
        return self._written

    def path_for(self, day: date) -> Path:
        return self._output_dir / f"{self._config.file_prefix}-{day.isoformat()}.jsonl"

    def _open_for_today(self) -> IO[str]:
        today = datetime.now(timezone.utc).date()
        if self._stream is None or self._day != today:
            self._close()
            self._stream = self.path_for(today).open("a", encoding="utf-8")
            self._day = today
            logger.debug("Writing metrics to %s", self.path_for(today))
        return self._stream

    def _close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def export(self, metrics: list[Metric]) -> None:
        if not metrics:
            return
        out = self._open_for_today()
        out.writelines(json.dumps(m.to_dict()) + "\n" for m in metrics)
        out.flush()
        self._written += len(metrics)

    def shutdown(self) -> None:
        self._close()
        logger.info("LocalExporter closed after %d metrics", self._written)


def read_metrics_file(path: str | Path) -> list[Metric]:
    """Parse a JSONL file written by :class:`LocalExporter`.

    Blank and malformed lines are skipped with a warning.
    """
    metrics: list[Metric] = []
    with open(path, encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, 1):
            line = line.strip()
            if not line:
                continue
            try:
                metrics.append(Metric.from_dict(json.loads(line)))
            except (ValueError, KeyError, TypeError):
                logger.warning("Skipping malformed line %d in %s", lineno, path)
    return metrics
