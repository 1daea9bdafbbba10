"""econfeed: resilient ingestion of economic time series from statistical agencies."""

__version__ = "0.1.0"
