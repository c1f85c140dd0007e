"""posthammer: fire concurrent sequential POST requests at one endpoint."""

from __future__ import annotations

from posthammer._internal.config import HammerConfig, build_config
from posthammer._internal.errors import ConfigError, PostHammerError, RequestFailedError
from posthammer.client.http_client import HttpClient
from posthammer.client.providers import (
    ClientProvider,
    PerWorkerClientProvider,
    SharedClientProvider,
)
from posthammer.engine.dispatcher import Dispatcher, dispatch
from posthammer.engine.protocol import DispatchResult, OutcomeStatus, WorkerOutcome
from posthammer.engine.runner import run_requests

__version__ = "0.1.0"

__all__ = [
    "ClientProvider",
    "ConfigError",
    "DispatchResult",
    "Dispatcher",
    "HammerConfig",
    "HttpClient",
    "OutcomeStatus",
    "PerWorkerClientProvider",
    "PostHammerError",
    "RequestFailedError",
    "SharedClientProvider",
    "WorkerOutcome",
    "build_config",
    "dispatch",
    "run_requests",
]
