"""Protocol definitions for dependency injection."""

from collections.abc import Awaitable
from typing import Protocol

from now_playing.models import ChangeEvent, Snapshot


class FetcherProtocol(Protocol):
    """Protocol for now playing fetchers.

    The watcher depends on this interface only, so tests can substitute
    a fake that returns canned snapshots or raises fetch errors.
    """

    async def fetch(self, source_url: str, deadline: float) -> Snapshot | None:
        """Fetch and parse the now playing page once.

        Args:
            source_url: URL of the now playing page
            deadline: Maximum seconds allowed for the fetch

        Returns:
            Snapshot, or None when nothing is playing

        Raises:
            FetchTimeoutException: If the deadline elapsed
            FetchNetworkException: On connection or HTTP failures
            PageParseException: If the page markup is unexpected
        """
        ...


class ChangeSubscriber(Protocol):
    """Callable receiving change events, sync or async."""

    def __call__(self, event: ChangeEvent) -> Awaitable[None] | None: ...
