"""Client providers selecting between one shared client and one per worker."""

from __future__ import annotations

import contextlib
from abc import ABC, abstractmethod
from functools import partial
from typing import TYPE_CHECKING

from posthammer._internal.logging import get_logger
from posthammer.client.http_client import HttpClient

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager
    from types import TracebackType

    from posthammer._internal.config import HammerConfig

    ClientFactory = Callable[[], HttpClient]

logger = get_logger("client.providers")


class ClientProvider(ABC):
    """Abstract source of HTTP clients for workers.

    The dispatcher asks the provider for one client per worker, in worker
    index order, before spawning that worker's task. The worker then wraps
    its request loop in :meth:`lease`, which opens and closes the client
    only when the worker owns it.

    A provider is itself an async context manager; clients it owns for
    the whole run are opened on entry and closed on exit.

    Example::

        async with SharedClientProvider(HttpClient) as provider:
            client = provider.client_for(0)
            async with provider.lease(client) as c:
                await c.post(url)
    """

    def __init__(self, client_factory: ClientFactory) -> None:
        self._client_factory = client_factory
        self.clients_created = 0

    def _new_client(self) -> HttpClient:
        client = self._client_factory()
        self.clients_created += 1
        return client

    @abstractmethod
    def client_for(self, worker_index: int) -> HttpClient:
        """Return the client the given worker should use.

        Args:
            worker_index: Index of the worker about to be spawned.

        Returns:
            An ``HttpClient`` instance, opened or not depending on
            ownership.
        """

    @abstractmethod
    def lease(self, client: HttpClient) -> AbstractAsyncContextManager[HttpClient]:
        """Return an async context manager scoping a worker's use of *client*."""

    @abstractmethod
    def describe(self) -> str:
        """Return a short description for logs and the run banner."""

    async def __aenter__(self) -> ClientProvider:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        return None


class SharedClientProvider(ClientProvider):
    """Hands the same open client to every worker.

    The client is constructed and opened when the provider is entered and
    closed when it exits. Workers borrow it without closing it.
    """

    def __init__(self, client_factory: ClientFactory) -> None:
        super().__init__(client_factory)
        self._client: HttpClient | None = None

    def client_for(self, worker_index: int) -> HttpClient:
        if self._client is None:
            msg = "SharedClientProvider must be used as an async context manager"
            raise RuntimeError(msg)
        return self._client

    def lease(self, client: HttpClient) -> AbstractAsyncContextManager[HttpClient]:
        return contextlib.nullcontext(client)

    def describe(self) -> str:
        return "shared client"

    async def __aenter__(self) -> SharedClientProvider:
        client = self._new_client()
        await client.__aenter__()
        self._client = client
        logger.debug("Shared client opened")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.__aexit__(exc_type, exc_val, exc_tb)
            self._client = None
            logger.debug("Shared client closed")


class PerWorkerClientProvider(ClientProvider):
    """Constructs a fresh client for each worker.

    Each worker exclusively owns its client: the lease opens the session
    when the worker starts and closes it when the worker finishes.
    """

    def client_for(self, worker_index: int) -> HttpClient:
        client = self._new_client()
        logger.debug("Constructed client for worker %d", worker_index)
        return client

    def lease(self, client: HttpClient) -> AbstractAsyncContextManager[HttpClient]:
        return client

    def describe(self) -> str:
        return "one client per worker"


def make_provider(
    config: HammerConfig,
    client_factory: ClientFactory | None = None,
) -> ClientProvider:
    """Select the provider matching ``config.share_connection``.

    Args:
        config: Run configuration.
        client_factory: Zero-argument callable building an ``HttpClient``.
            Defaults to ``HttpClient`` with the configured timeout.

    Returns:
        A ``SharedClientProvider`` or ``PerWorkerClientProvider``.
    """
    factory = client_factory or partial(HttpClient, timeout=config.request_timeout)
    if config.share_connection:
        return SharedClientProvider(factory)
    return PerWorkerClientProvider(factory)
