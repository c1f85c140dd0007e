"""Custom exception hierarchy for posthammer."""

from __future__ import annotations


class PostHammerError(Exception):
    """Base exception for all posthammer errors.

    All custom exceptions raised by posthammer inherit from this class,
    so callers can catch any posthammer-specific error with a single
    except clause.
    """


class ConfigError(PostHammerError):
    """Raised when run configuration is invalid.

    Examples:
        - ``worker_count`` is zero or negative.
        - ``request_timeout`` is not a positive number.
    """


class RequestFailedError(PostHammerError):
    """Raised when a worker's request fails at the transport level.

    The failed request aborts the worker. ``request_index`` is the
    0-based index of the request that failed, which is also the number
    of requests the worker completed before failing.

    Attributes:
        worker_index: Index of the worker that issued the request.
        request_index: 0-based index of the failed request.
        request_count: Number of requests the worker was asked to send.
    """

    def __init__(self, worker_index: int, request_index: int, request_count: int) -> None:
        self.worker_index = worker_index
        self.request_index = request_index
        self.request_count = request_count
        super().__init__(
            f"Worker {worker_index} failed on request {request_index} "
            f"of {request_count}"
        )
