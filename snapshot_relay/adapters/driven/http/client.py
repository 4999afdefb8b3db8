"""HTTP client adapter: snapshot fetcher and startup probe."""

import asyncio
import logging
from types import TracebackType

import aiohttp
from aiohttp import ClientResponse, ClientTimeout

from snapshot_relay.adapters.driven.http.retry import retry
from snapshot_relay.core.errors import FetchError
from snapshot_relay.ports.snapshot import SnapshotPayload

__all__ = ["HttpClient"]

logger = logging.getLogger(__name__)

PROBE_RETRIES = 5
PROBE_TIMEOUT = 10
DEFAULT_FETCH_TIMEOUT = 10.0
USER_AGENT = "snapshot-relay"


class HttpClient:
    """aiohttp-backed snapshot fetcher.

    Features:
    - One shared session for the whole process (context manager).
    - Single-shot fetch per tick; every failure becomes FetchError.
    - Health check/probe functionality with retry.
    """

    def __init__(self, timeout_sec: float = DEFAULT_FETCH_TIMEOUT) -> None:
        """Initialize HTTP client.

        Args:
            timeout_sec: Total timeout for one fetch, body included.
        """
        self.timeout = ClientTimeout(total=timeout_sec)
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "HttpClient":
        """Enter async context manager (start session).

        Returns:
            Self for use in async with statement.
        """
        self.session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Exit async context manager (close session)."""
        if self.session:
            await self.session.close()

    async def fetch(self, url: str) -> SnapshotPayload:
        """Fetch the snapshot body in one GET.

        Args:
            url: Snapshot URL (validated at configuration time).

        Returns:
            The fetched snapshot with its full body in memory.

        Raises:
            RuntimeError: If session not initialized.
            FetchError: On network failure, timeout, non-2xx status or
                body read failure. Never retried here.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")

        try:
            async with self.session.get(url, timeout=self.timeout, allow_redirects=True) as resp:
                if not 200 <= resp.status < 300:
                    raise FetchError(url, f"HTTP status {resp.status}", status_code=resp.status)
                body = await resp.read()
                content_type = resp.headers.get("Content-Type")
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"timed out after {self.timeout.total}s") from e
        except aiohttp.ClientError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

        return SnapshotPayload(
            url=url,
            body=body,
            content_type=content_type,
            fetched_at_sec=asyncio.get_running_loop().time(),
        )

    @retry(times=PROBE_RETRIES)
    async def _probe_once(self, url: str, timeout: int = PROBE_TIMEOUT) -> ClientResponse:
        """Single HTTP GET request for health check (with retry).

        Raises:
            RuntimeError: If session not initialized.
            aiohttp exceptions: Network/timeout errors (retried by decorator).
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")
        async with self.session.get(
            url, timeout=ClientTimeout(timeout), allow_redirects=True
        ) as resp:
            return resp

    async def probe(self, url: str, timeout: int = PROBE_TIMEOUT) -> bool:
        """Check if HTTP endpoint is reachable.

        Attempts up to PROBE_RETRIES times with backoff.

        Args:
            url: URL to probe.
            timeout: Timeout in seconds.

        Returns:
            True if reachable (200 <= status < 300), False otherwise.
        """
        logger.info(f"Probing endpoint {url}...")
        try:
            resp = await self._probe_once(url, timeout)
        except Exception as e:
            logger.warning(f"Probe failed for {url}: {e!r}")
            return False

        logger.info(f"Probe for {url} returned status {resp.status}")
        return 200 <= resp.status < 300
