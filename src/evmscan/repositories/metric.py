"""Repository for stored metrics."""

from evmscan.models.metric import StorageMetric
from evmscan.repositories.base import BaseRepository


class MetricRepository(BaseRepository[StorageMetric]):
    """Repository for StorageMetric rows, keyed by metric name."""

    model = StorageMetric
