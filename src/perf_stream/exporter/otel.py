"""OpenTelemetry exporter – pushes flushed metrics via OTLP/HTTP."""

from __future__ import annotations

import logging
from typing import Any

from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource, SERVICE_NAME

from ..collector.base import Metric
from ..config import OtelExporterConfig
from .base import BaseExporter

logger = logging.getLogger(__name__)

_SCALARS = (str, bool, int, float)


def metric_attributes(metric: Metric) -> dict[str, Any]:
    """Build OTel attributes from a metric's type and scalar metadata."""
    attributes: dict[str, Any] = {"type": metric.type}
    for key, value in metric.metadata.items():
        if key == "unit" or not isinstance(value, _SCALARS):
            continue
        attributes[key] = value
    return attributes


class OtelExporter(BaseExporter):
    """Exports flushed metrics to an OpenTelemetry endpoint.

    Each call to :meth:`export` records gauge observations via the OTel SDK;
    the reader flushes them to the configured OTLP/HTTP endpoint. A custom
    *reader* may be passed in place of the periodic OTLP reader.
    """

    def __init__(self, config: OtelExporterConfig, reader: MetricReader | None = None) -> None:
        self._config = config
        resource = Resource.create({SERVICE_NAME: config.service_name})

        if reader is None:
            exporter_kwargs: dict[str, Any] = {
                "endpoint": f"{config.endpoint.rstrip('/')}/v1/metrics",
            }
            if config.headers:
                exporter_kwargs["headers"] = config.headers
            reader = PeriodicExportingMetricReader(
                OTLPMetricExporter(**exporter_kwargs),
                export_interval_millis=config.export_interval_ms,
            )

        self._provider = MeterProvider(resource=resource, metric_readers=[reader])
        self._meter = self._provider.get_meter("perf_stream")
        self._gauges: dict[str, Any] = {}

        logger.info(
            "OtelExporter initialized → %s (service=%s)",
            config.endpoint,
            config.service_name,
        )

    def _get_gauge(self, name: str, unit: str) -> Any:
        if name not in self._gauges:
            self._gauges[name] = self._meter.create_gauge(name=name, unit=unit)
        return self._gauges[name]

    def export(self, metrics: list[Metric]) -> None:
        for m in metrics:
            gauge = self._get_gauge(m.name, str(m.metadata.get("unit", "")))
            gauge.set(m.value, attributes=metric_attributes(m))

    def shutdown(self) -> None:
        self._provider.shutdown()
        logger.info("OtelExporter shut down")
