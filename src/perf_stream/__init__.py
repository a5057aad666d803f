"""In-process metrics pipeline: CPU sampling collectors feeding a buffered stream."""

__version__ = "0.1.0"
