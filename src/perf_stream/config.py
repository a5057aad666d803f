"""Configuration loading and validation for perf_stream."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


class ConfigError(ValueError):
    """Raised when a configuration value is missing or malformed."""


def _require_number(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")


@dataclass
class OtelExporterConfig:
    """OpenTelemetry exporter settings."""

    enabled: bool = False
    endpoint: str = "http://localhost:4318"
    service_name: str = "perf-stream"
    headers: dict[str, str] = field(default_factory=dict)
    export_interval_ms: int = 10000


@dataclass
class CollectorConfig:
    """Collection loop settings."""

    enabled: bool = True
    interval_seconds: float = 2.0

    def __post_init__(self) -> None:
        _require_number("collector.interval_seconds", self.interval_seconds)
        if self.interval_seconds < 0:
            raise ConfigError(f"collector.interval_seconds must be >= 0, got {self.interval_seconds}")


@dataclass
class LocalExporterConfig:
    """Local file exporter settings."""

    enabled: bool = True
    output_dir: str = "./perf_data"
    file_prefix: str = "metrics"


@dataclass
class PerfStreamConfig:
    """Top-level perf_stream configuration."""

    cpu_profiling_duration_ms: float = 500
    metrics_buffer_size: int = 1000
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    local_exporter: LocalExporterConfig = field(default_factory=LocalExporterConfig)
    otel: OtelExporterConfig = field(default_factory=OtelExporterConfig)

    def __post_init__(self) -> None:
        _require_number("cpu_profiling_duration_ms", self.cpu_profiling_duration_ms)
        if self.cpu_profiling_duration_ms <= 0:
            raise ConfigError(
                f"cpu_profiling_duration_ms must be > 0, got {self.cpu_profiling_duration_ms}"
            )
        if isinstance(self.metrics_buffer_size, bool) or not isinstance(self.metrics_buffer_size, int):
            raise ConfigError(
                f"metrics_buffer_size must be an integer, got {self.metrics_buffer_size!r}"
            )


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _merge_dict(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *source* into *target*."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge_dict(target[key], value)
        else:
            target[key] = value
    return target


_ENV_MAP: dict[str, tuple[tuple[str, ...], Any]] = {
    "PERF_STREAM_CPU_PROFILING_DURATION": (("cpu_profiling_duration_ms",), float),
    "PERF_STREAM_METRICS_BUFFER_SIZE": (("metrics_buffer_size",), int),
    "PERF_STREAM_COLLECTOR_INTERVAL": (("collector", "interval_seconds"), float),
    "PERF_STREAM_LOCAL_OUTPUT_DIR": (("local_exporter", "output_dir"), str),
    "PERF_STREAM_OTEL_ENABLED": (("otel", "enabled"), _to_bool),
    "PERF_STREAM_OTEL_ENDPOINT": (("otel", "endpoint"), str),
    "PERF_STREAM_OTEL_SERVICE_NAME": (("otel", "service_name"), str),
}


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides using the PERF_STREAM_ prefix."""
    for env_key, (path, coerce) in _ENV_MAP.items():
        value = os.environ.get(env_key)
        if value is None:
            continue
        try:
            coerced = coerce(value)
        except ValueError as exc:
            raise ConfigError(f"Invalid value for {env_key}: {value!r}") from exc
        override: dict[str, Any] = {path[-1]: coerced}
        for part in reversed(path[:-1]):
            override = {part: override}
        _merge_dict(data, override)
    return data


def _section(data: dict[str, Any], key: str, cls: type) -> Any:
    raw = data.get(key) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Section {key!r} must be a mapping")
    return cls(**{k: v for k, v in raw.items() if k in cls.__dataclass_fields__})


def _dict_to_config(data: dict[str, Any]) -> PerfStreamConfig:
    """Convert a raw dictionary to a PerfStreamConfig dataclass."""
    defaults = PerfStreamConfig()
    return PerfStreamConfig(
        cpu_profiling_duration_ms=data.get("cpu_profiling_duration_ms", defaults.cpu_profiling_duration_ms),
        metrics_buffer_size=data.get("metrics_buffer_size", defaults.metrics_buffer_size),
        collector=_section(data, "collector", CollectorConfig),
        local_exporter=_section(data, "local_exporter", LocalExporterConfig),
        otel=_section(data, "otel", OtelExporterConfig),
    )


def load_config(path: str | Path | None = None) -> PerfStreamConfig:
    """Load configuration from a YAML file with environment overrides.

    Looks for ``perf_stream.yaml`` in the current directory if *path* is None.
    A missing file yields the defaults.
    """
    data: dict[str, Any] = {}
    if path is None:
        path = Path("perf_stream.yaml")
    else:
        path = Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    return _dict_to_config(data)
