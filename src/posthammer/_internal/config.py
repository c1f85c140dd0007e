"""Run configuration for posthammer."""

from __future__ import annotations

from dataclasses import dataclass

from posthammer._internal.errors import ConfigError


@dataclass(frozen=True)
class HammerConfig:
    """Immutable configuration shared by every worker of a run.

    Attributes:
        worker_count: Number of concurrent workers.
        requests_per_worker: Sequential POST requests issued by each worker.
        target_uri: Destination URL for every request.
        share_connection: If True, all workers reuse one HTTP client.
        request_timeout: Total timeout per request in seconds. None keeps
            the HTTP library's default timeout.
    """

    worker_count: int
    requests_per_worker: int
    target_uri: str
    share_connection: bool = False
    request_timeout: float | None = None


def build_config(
    worker_count: int,
    requests_per_worker: int,
    target_uri: str,
    *,
    share_connection: bool = False,
    request_timeout: float | None = None,
) -> HammerConfig:
    """Validate run parameters and return a ``HammerConfig``.

    The target URI is passed through as-is; malformed URLs surface as
    transport errors when the first request is sent.

    Raises:
        ConfigError: If a numeric value is out of range.
    """
    if worker_count < 1:
        msg = f"worker_count must be >= 1, got: {worker_count}"
        raise ConfigError(msg)

    if requests_per_worker < 0:
        msg = f"requests_per_worker must be >= 0, got: {requests_per_worker}"
        raise ConfigError(msg)

    if request_timeout is not None and request_timeout <= 0:
        msg = f"request_timeout must be positive, got: {request_timeout}"
        raise ConfigError(msg)

    return HammerConfig(
        worker_count=worker_count,
        requests_per_worker=requests_per_worker,
        target_uri=target_uri,
        share_connection=share_connection,
        request_timeout=request_timeout,
    )
