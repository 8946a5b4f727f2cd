"""
HTTP transport shared by the reader and writer of one session.

aiohttp reports a request that ran out of time in more than one way: a
ServerTimeoutError, a bare asyncio.TimeoutError, or a CancelledError whose
context is the timeout that triggered it.  unwrap_timeout() folds all of
those into TransportTimeout so callers can tell "the player was slow" apart
from "we were asked to stop".  A plain cancellation is passed through.

Usage:
    async with HttpTransport(endpoint, timeout=1.0) as transport:
        body = await transport.get("variables.html")
"""

import asyncio
import logging

import aiohttp
from yarl import URL

from .endpoint import Endpoint

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The player could not be reached or answered with a non-success status."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class TransportTimeout(TransportError):
    """A single request timed out.  The session may still be healthy."""


async def unwrap_timeout(awaitable):
    """Await *awaitable*, translating client timeouts into TransportTimeout."""
    try:
        return await awaitable
    except asyncio.CancelledError as e:
        task = asyncio.current_task()
        if task is not None and task.cancelling():
            raise
        cause = e.__cause__ or e.__context__
        if isinstance(cause, TimeoutError):
            raise TransportTimeout(str(cause) or "Request timed out") from cause
        raise
    except TimeoutError as e:
        # asyncio.TimeoutError and aiohttp.ServerTimeoutError both land here
        raise TransportTimeout(str(e) or "Request timed out") from e
    except aiohttp.ClientResponseError as e:
        raise TransportError(f"HTTP {e.status}: {e.message}", status=e.status) from e
    except aiohttp.ClientError as e:
        raise TransportError(str(e) or e.__class__.__name__) from e


class HttpTransport:
    """One aiohttp session bound to a player endpoint."""

    def __init__(self, endpoint: Endpoint, timeout: float,
                 headers: dict[str, str] | None = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self._headers = headers or {}
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self):
        self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def open(self):
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self._headers,
            )

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    def url_for(self, path: str) -> URL:
        """Absolute URL for *path*.  Query strings are sent exactly as given."""
        return URL(f"{self.endpoint.base_url}/{path.lstrip('/')}", encoded=True)

    async def get(self, path: str = "") -> str:
        """GET *path* and return the body.  Raises TransportError/TransportTimeout."""
        if self._session is None:
            raise TransportError("Transport is not open")
        return await unwrap_timeout(self._fetch(self.url_for(path)))

    async def _fetch(self, url: URL) -> str:
        async with self._session.get(url) as resp:
            resp.raise_for_status()
            return await resp.text()
