"""Spawns one task per worker and collects every worker's outcome."""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from posthammer._internal.errors import RequestFailedError
from posthammer._internal.logging import get_logger, setup_logging, worker_context
from posthammer.client.providers import make_provider
from posthammer.engine.protocol import DispatchResult, OutcomeStatus, WorkerOutcome
from posthammer.engine.runner import run_requests

if TYPE_CHECKING:
    from collections.abc import Callable

    from posthammer._internal.config import HammerConfig
    from posthammer.client.http_client import HttpClient
    from posthammer.client.providers import ClientFactory, ClientProvider

logger = get_logger("engine.dispatcher")


class DispatchState(Enum):
    """Lifecycle of a dispatcher run.

    NOT_STARTED -> AWAITING -> COMPLETED
    """

    NOT_STARTED = auto()
    AWAITING = auto()
    COMPLETED = auto()


class Dispatcher:
    """Runs every worker of a load run concurrently and accounts for all of them.

    Workers are spawned in index order and awaited in completion order.
    A failing worker never stops the others: each task resolves to a
    ``WorkerOutcome``, whether it succeeded, hit a transport error, or
    raised something unexpected.

    Attributes:
        config: The run configuration.
    """

    def __init__(
        self,
        config: HammerConfig,
        *,
        client_factory: ClientFactory | None = None,
        on_outcome: Callable[[WorkerOutcome], None] | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            config: Validated run configuration.
            client_factory: Optional zero-argument callable building clients.
                Defaults to ``HttpClient`` with the configured timeout.
            on_outcome: Optional callback invoked with each outcome as soon
                as its worker finishes.
        """
        self.config = config
        self._client_factory = client_factory
        self._on_outcome = on_outcome
        self._state = DispatchState.NOT_STARTED
        self.provider: ClientProvider | None = None

    @property
    def state(self) -> DispatchState:
        """Return the current dispatch state."""
        return self._state

    async def run(self) -> DispatchResult:
        """Spawn all workers, wait for every one, and return their outcomes.

        Returns:
            DispatchResult with one outcome per worker, ordered by index.
        """
        config = self.config
        provider = make_provider(config, self._client_factory)
        self.provider = provider

        logger.info(
            "Running %d workers with %d requests per worker against %s (%s)",
            config.worker_count,
            config.requests_per_worker,
            config.target_uri,
            provider.describe(),
        )

        outcomes: list[WorkerOutcome] = []
        start_time = time.monotonic()

        async with provider:
            tasks: list[asyncio.Task[WorkerOutcome]] = []
            try:
                for i in range(config.worker_count):
                    client = provider.client_for(i)
                    logger.debug("Spawning worker %d", i)
                    tasks.append(
                        asyncio.create_task(
                            self._run_worker(provider, client, i),
                            name=f"worker-{i}",
                        )
                    )

                self._state = DispatchState.AWAITING
                for next_done in asyncio.as_completed(tasks):
                    outcome = await next_done
                    self._report(outcome)
                    outcomes.append(outcome)
            finally:
                pending = [t for t in tasks if not t.done()]
                for task in pending:
                    task.cancel()
                if pending:
                    await asyncio.wait(pending)

        duration = time.monotonic() - start_time
        self._state = DispatchState.COMPLETED

        result = DispatchResult(
            outcomes=sorted(outcomes, key=lambda o: o.worker_index),
            duration_seconds=duration,
        )
        logger.info(
            "All %d workers accounted for: succeeded=%d, failed=%d, faulted=%d, "
            "requests=%d, duration=%.2fs",
            len(result.outcomes),
            result.succeeded,
            result.failed,
            result.faulted,
            result.requests_completed,
            duration,
        )
        return result

    async def _run_worker(
        self,
        provider: ClientProvider,
        client: HttpClient,
        worker_index: int,
    ) -> WorkerOutcome:
        """Run one worker and turn however it ends into a ``WorkerOutcome``."""
        sent = 0

        def _on_sent(count: int) -> None:
            nonlocal sent
            sent = count

        try:
            async with provider.lease(client) as leased:
                index, completed = await run_requests(
                    leased,
                    worker_index,
                    self.config.requests_per_worker,
                    self.config.target_uri,
                    on_sent=_on_sent,
                )
        except RequestFailedError as exc:
            cause = exc.__cause__
            return WorkerOutcome(
                worker_index=worker_index,
                status=OutcomeStatus.FAILED,
                requests_completed=exc.request_index,
                error_message=f"{exc}: {type(cause).__name__}: {cause}",
            )
        except Exception as exc:
            logger.debug(
                "Worker %d raised after %d requests",
                worker_index,
                sent,
                exc_info=True,
                extra=worker_context(worker_index),
            )
            return WorkerOutcome(
                worker_index=worker_index,
                status=OutcomeStatus.FAULTED,
                requests_completed=sent,
                error_message=f"{type(exc).__name__}: {exc}",
            )

        return WorkerOutcome(
            worker_index=index,
            status=OutcomeStatus.SUCCEEDED,
            requests_completed=completed,
        )

    def _report(self, outcome: WorkerOutcome) -> None:
        context = worker_context(outcome.worker_index)
        if outcome.status is OutcomeStatus.SUCCEEDED:
            logger.info(
                "Worker %d complete after %d requests",
                outcome.worker_index,
                outcome.requests_completed,
                extra=context,
            )
        elif outcome.status is OutcomeStatus.FAILED:
            logger.error(
                "Worker %d failed: %s", outcome.worker_index, outcome.error_message, extra=context
            )
        else:
            logger.error(
                "Worker %d faulted: %s", outcome.worker_index, outcome.error_message, extra=context
            )

        if self._on_outcome is None:
            return
        # Reporting failures never stop the remaining workers from being awaited
        try:
            self._on_outcome(outcome)
        except Exception:
            logger.exception(
                "on_outcome callback failed for worker %d",
                outcome.worker_index,
                extra=context,
            )


def _event_loop_factory() -> Callable[[], asyncio.AbstractEventLoop] | None:
    """Return uvloop's loop factory, or None to use the default asyncio loop on Windows."""
    if sys.platform == "win32":
        return None

    import uvloop

    return uvloop.new_event_loop


def dispatch(
    config: HammerConfig,
    *,
    client_factory: ClientFactory | None = None,
    on_outcome: Callable[[WorkerOutcome], None] | None = None,
    on_complete: Callable[[DispatchResult], None] | None = None,
    log_level: int = logging.INFO,
    json_logs: bool = False,
) -> int:
    """Run a full load run to completion in a fresh event loop.

    Blocks until every worker is accounted for. Individual worker failures
    do not affect the return value.

    Args:
        config: Validated run configuration.
        client_factory: Optional zero-argument callable building clients.
        on_outcome: Optional callback invoked with each worker outcome.
        on_complete: Optional callback invoked with the final result.
        log_level: Logging level for the ``posthammer`` logger.
        json_logs: If True, emit structured JSON logs.

    Returns:
        Process exit status, always 0 once all workers were awaited.
    """
    setup_logging(level=log_level, json_format=json_logs)

    dispatcher = Dispatcher(config, client_factory=client_factory, on_outcome=on_outcome)
    with asyncio.Runner(loop_factory=_event_loop_factory()) as runner:
        result = runner.run(dispatcher.run())

    if on_complete is not None:
        on_complete(result)
    return 0
