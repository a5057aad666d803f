from .base import BaseCollector, CollectorStateError, Metric
from .cpu import CpuCollector, CpuUsage, read_process_cpu_usage

__all__ = [
    "BaseCollector",
    "CollectorStateError",
    "CpuCollector",
    "CpuUsage",
    "Metric",
    "read_process_cpu_usage",
]
