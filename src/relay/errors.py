"""Exceptions surfaced by the upstream-access layer."""

from typing import Optional


class RelayError(Exception):
    """Base exception for errors a route handler is expected to translate."""


class DatasetSourceError(RelayError):
    """Raised when a single dataset tier (remote or local) cannot supply data."""

    def __init__(self, message: str, source: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class NoDataAvailable(RelayError):
    """Raised when no tier has ever produced the dataset."""

    def __init__(
        self,
        message: str = "Dataset unavailable: remote and local sources failed and nothing is cached",
        remote_error: Optional[Exception] = None,
        local_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.remote_error = remote_error
        self.local_error = local_error


class CompletionError(RelayError):
    """Raised when the completion client gives up on a conversation.

    ``fatal`` errors were rejected by the upstream and never retried.
    ``exhausted`` errors were transient but outlasted the retry budget.
    """

    def __init__(
        self,
        message: str,
        fatal: bool,
        exhausted: bool = False,
        attempts: Optional[list] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.fatal = fatal
        self.exhausted = exhausted
        self.attempts = attempts or []
        self.status_code = status_code

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)
