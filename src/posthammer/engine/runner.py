"""Sequential request loop executed by a single worker."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiohttp

from posthammer._internal.errors import RequestFailedError
from posthammer._internal.logging import get_logger, worker_context

if TYPE_CHECKING:
    from collections.abc import Callable

    from posthammer.client.http_client import HttpClient

logger = get_logger("engine.runner")

# Exceptions treated as transport failures. HTTP statuses never raise.
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (aiohttp.ClientError, TimeoutError)


async def run_requests(
    client: HttpClient,
    worker_index: int,
    request_count: int,
    url: str,
    *,
    on_sent: Callable[[int], None] | None = None,
) -> tuple[int, int]:
    """Send ``request_count`` POST requests to ``url``, one after another.

    Request ``i + 1`` is not sent until request ``i`` has returned. The
    first transport error aborts the loop; no later requests are sent.

    Args:
        client: Open client to send requests with.
        worker_index: Worker index, used only for logging and error tagging.
        request_count: Number of requests to send.
        url: Target URL, passed to the client unvalidated.
        on_sent: Optional callback invoked with the running count of
            requests sent after each request returns.

    Returns:
        ``(worker_index, request_count)`` once every request was sent.

    Raises:
        RequestFailedError: On the first transport error, chained to it.
    """
    logger.info("Starting worker %d", worker_index, extra=worker_context(worker_index))

    for i in range(request_count):
        context = worker_context(worker_index, i)
        logger.debug("Worker %d requesting %d", worker_index, i, extra=context)
        try:
            status = await client.post(url)
        except TRANSPORT_ERRORS as exc:
            logger.debug(
                "Worker %d request %d failed: %s: %s",
                worker_index,
                i,
                type(exc).__name__,
                exc,
                extra=context,
            )
            raise RequestFailedError(worker_index, i, request_count) from exc
        logger.debug("Worker %d request %d returned %d", worker_index, i, status, extra=context)
        if on_sent is not None:
            on_sent(i + 1)

    logger.info(
        "Worker %d sent %d requests",
        worker_index,
        request_count,
        extra=worker_context(worker_index),
    )
    return worker_index, request_count
