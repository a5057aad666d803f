from .base import BaseExporter
from .local import LocalExporter, read_metrics_file

__all__ = ["BaseExporter", "LocalExporter", "read_metrics_file"]
