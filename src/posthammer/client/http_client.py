"""Async HTTP client used by workers to send POST requests."""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

import aiohttp

from posthammer._internal.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

logger = get_logger("client.http")

# Sequence numbers identifying clients in logs
_client_ids = itertools.count()


class HttpClient:
    """Thin async wrapper around ``aiohttp.ClientSession``.

    The session is opened on ``__aenter__`` and closed on ``__aexit__``.
    A single open client may be used concurrently by many tasks on the
    same event loop; aiohttp pools and reuses connections internally.

    Transport problems (refused connections, DNS and TLS failures,
    malformed URLs, timeouts) raise ``aiohttp.ClientError`` or
    ``TimeoutError``. HTTP error statuses never raise.

    Attributes:
        client_id: Sequence number assigned at construction, used in logs.
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize the client without opening a session.

        Args:
            timeout: Total timeout per request in seconds. None keeps
                aiohttp's default ``ClientTimeout``.
        """
        self._timeout = (
            aiohttp.ClientTimeout(total=timeout)
            if timeout is not None
            else aiohttp.ClientTimeout()
        )
        self._session: aiohttp.ClientSession | None = None
        self.client_id = next(_client_ids)

    @property
    def closed(self) -> bool:
        """Return True if no session is currently open."""
        return self._session is None or self._session.closed

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        logger.debug("Opened HTTP client %d", self.client_id)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.debug("Closed HTTP client %d", self.client_id)

    async def post(self, url: str) -> int:
        """Send a bodiless POST request and discard the response body.

        The body is read to completion so the connection can be returned
        to the pool.

        Args:
            url: Full request URL.

        Returns:
            The HTTP status code.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        async with self._session.post(url) as resp:
            await resp.read()
            return resp.status
