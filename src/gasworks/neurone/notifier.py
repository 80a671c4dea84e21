"""
Notifier: Fire-and-forget excitation of neighbouring neurones.

A notification is a bare GET to ``<address>?e=<transfer>``. Nobody waits
for it: notify() schedules the request on the running event loop and
returns straight away. Failures are logged and forgotten. There are no
retries, since a retried notification would make a neighbour fire twice.
"""

from typing import Optional, Set
import asyncio
import logging

import httpx

from .exceptions import PeerNotificationError
from .metrics import AxonMetrics

logger = logging.getLogger(__name__)


def build_notification_url(address: str, transfer: float) -> str:
    """The wire form of a notification: ``<address>?e=<transfer>``."""
    return f"{address}?e={transfer:f}"


class HttpPeerNotifier:
    """
    Sends notifications over HTTP with a shared httpx.AsyncClient.

    In-flight requests are held in ``pending`` so they are not garbage
    collected before they finish.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        metrics: Optional[AxonMetrics] = None,
    ):
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.metrics = metrics
        self.pending: Set[asyncio.Task] = set()

    def notify(self, address: str, transfer: float) -> None:
        url = build_notification_url(address, transfer)
        task = asyncio.get_running_loop().create_task(self._deliver(url, address))
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)

    async def _deliver(self, url: str, address: str) -> bool:
        try:
            await self.client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error = PeerNotificationError(
                "Peer notification failed",
                address=address,
                original_error=e,
            )
            logger.warning(f"{error} | {error.to_dict()}")
            self._record(False)
            return False

        logger.debug(f"Notified {url}")
        self._record(True)
        return True

    def _record(self, ok: bool) -> None:
        if self.metrics is not None:
            self.metrics.record_notification(ok)

    async def drain(self) -> None:
        """Wait for every in-flight notification to finish."""
        if self.pending:
            await asyncio.gather(*list(self.pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self.client.aclose()


class NullPeerNotifier:
    """A notifier for isolated nodes. Logs and drops every notification."""

    def notify(self, address: str, transfer: float) -> None:
        logger.debug(f"Dropped notification to {build_notification_url(address, transfer)}")
