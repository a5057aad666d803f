from .events import EventEmitter
from .metrics_stream import DATA_EVENT, MetricsStream

__all__ = ["DATA_EVENT", "EventEmitter", "MetricsStream"]
