from .dataset_provider import DatasetPort
from .metrics_sink import MetricsSinkPort

__all__ = [
    "DatasetPort",
    "MetricsSinkPort",
]
