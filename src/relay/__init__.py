"""Relay - resilient access to a remote CSV dataset and a chat completion API"""

__version__ = "1.0.0"

from .completion import RetryingCompletionClient, RetryPolicy
from .dataset import CachedDataset, Provenance, TieredDataCache
from .errors import CompletionError, NoDataAvailable, RelayError

__all__ = [
    "CachedDataset",
    "CompletionError",
    "NoDataAvailable",
    "Provenance",
    "RelayError",
    "RetryPolicy",
    "RetryingCompletionClient",
    "TieredDataCache",
]
