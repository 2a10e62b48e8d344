"""Dataset access with remote, cached and bundled tiers."""

from ..errors import DatasetSourceError, NoDataAvailable
from .cache import TieredDataCache
from .models import CachedDataset, Provenance, count_rows, parse_table
from .sources import DEFAULT_DATASET_URL, LocalDatasetSource, RemoteDatasetSource

__all__ = [
    "CachedDataset",
    "DEFAULT_DATASET_URL",
    "DatasetSourceError",
    "LocalDatasetSource",
    "NoDataAvailable",
    "Provenance",
    "RemoteDatasetSource",
    "TieredDataCache",
    "count_rows",
    "parse_table",
]
