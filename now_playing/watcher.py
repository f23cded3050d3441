"""Watcher that polls the now playing page and publishes change events.

A running watcher owns one worker task. The task runs a tick, then sleeps
until the next tick boundary. Ticks from the worker and from poll_once are
serialized by a tick lock, so at most one fetch is in flight. State
transitions and the snapshot compare-and-swap share a separate asyncio.Lock,
which is never held across the network call, so stop() cancels a slow fetch
instead of waiting for it.
"""

import asyncio
import inspect
import logging
import weakref
from collections.abc import Callable
from types import MethodType
from typing import Any

from now_playing.config import Settings
from now_playing.exceptions import FetchTimeoutException, NowPlayingException
from now_playing.logging_config import get_logger, log_with_context
from now_playing.models import ChangeEvent, Snapshot, snapshots_equivalent
from now_playing.protocols import ChangeSubscriber, FetcherProtocol

# Fetch deadline as a multiple of the polling interval
DEADLINE_MULTIPLIER = 5


def _weak_reference(handler: ChangeSubscriber) -> weakref.ref:
    if isinstance(handler, MethodType):
        return weakref.WeakMethod(handler)
    return weakref.ref(handler)


class NowPlayingWatcher:
    """Polls a now playing page and notifies subscribers of changes.

    Subscribers are held weakly; keep a reference to a handler for as long
    as it should receive events. Teardown is explicit: call stop() or
    aclose(), or use the watcher as an async context manager.
    """

    def __init__(
        self,
        source_url: str,
        polling_interval_ms: int,
        fetcher: FetcherProtocol,
        logger: logging.Logger | None = None,
    ):
        """Initialize the watcher.

        Args:
            source_url: URL of the now playing page
            polling_interval_ms: Polling interval in milliseconds
            fetcher: Fetcher performing one fetch + parse per tick
            logger: Logging sink for timeouts and failures (defaults to module logger)
        """
        if polling_interval_ms <= 0:
            raise ValueError("polling_interval_ms must be positive")

        self._source_url = source_url
        self._interval = polling_interval_ms / 1000
        self._fetcher = fetcher
        self._logger = logger if logger is not None else get_logger(__name__)

        self._lock = asyncio.Lock()
        # Serializes ticks from the worker and poll_once callers
        self._tick_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._is_running = False
        self._last_snapshot: Snapshot | None = None
        self._subscribers: list[weakref.ref] = []

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        fetcher: FetcherProtocol,
        logger: logging.Logger | None = None,
    ) -> "NowPlayingWatcher":
        """Create a watcher from settings. Settings are read once, here."""
        return cls(settings.source_url, settings.polling_interval, fetcher, logger=logger)

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def last_snapshot(self) -> Snapshot | None:
        return self._last_snapshot

    @property
    def deadline(self) -> float:
        """Maximum seconds allowed for one fetch."""
        return self._interval * DEADLINE_MULTIPLIER

    # Subscriptions

    def subscribe(self, handler: ChangeSubscriber) -> None:
        """Register a handler for change events.

        Args:
            handler: Callable or coroutine function receiving a ChangeEvent

        Raises:
            TypeError: If the handler cannot be weakly referenced (e.g. a builtin)
        """
        self._prune_subscribers()
        if handler not in self._live_subscribers():
            self._subscribers.append(_weak_reference(handler))

    def unsubscribe(self, handler: ChangeSubscriber) -> None:
        """Remove a previously registered handler. Unknown handlers are ignored."""
        self._subscribers = [ref for ref in self._subscribers if ref() is not None and ref() != handler]

    def _prune_subscribers(self) -> None:
        self._subscribers = [ref for ref in self._subscribers if ref() is not None]

    def _live_subscribers(self) -> list[Callable[[ChangeEvent], Any]]:
        handlers = []
        for ref in self._subscribers:
            handler = ref()
            if handler is not None:
                handlers.append(handler)
        return handlers

    # Lifecycle

    async def start(self) -> None:
        """Begin polling. No-op if already running."""
        async with self._lock:
            if self._is_running:
                return
            self._task = asyncio.create_task(self._run(), name="now-playing-watcher")
            self._is_running = True
            log_with_context(
                self._logger,
                "info",
                "Started watching",
                source_url=self._source_url,
                polling_interval_ms=int(self._interval * 1000),
                event_type="watcher_started",
            )

    async def stop(self) -> None:
        """Stop polling and cancel any in-flight fetch. No-op if already stopped.

        When this returns from outside the worker, no further tick logic runs.
        Called from a subscriber (inside the worker), the worker is cancelled
        and finishes at its next suspension point.
        """
        async with self._lock:
            if not self._is_running:
                return
            task = self._task
            self._task = None
            self._is_running = False

            if task is not None:
                task.cancel()
                if task is not asyncio.current_task():
                    await asyncio.gather(task, return_exceptions=True)

            log_with_context(
                self._logger,
                "info",
                "Stopped watching",
                source_url=self._source_url,
                event_type="watcher_stopped",
            )

    async def aclose(self) -> None:
        """Tear down the watcher. Safe to call any number of times."""
        await self.stop()

    async def __aenter__(self) -> "NowPlayingWatcher":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # Polling

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            next_tick = loop.time() + self._interval
            await self.poll_once()
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    async def poll_once(self) -> ChangeEvent | None:
        """Run one tick: fetch, diff against the last snapshot, publish.

        Ticks never overlap: a call made while the worker is mid-tick waits
        for that tick to finish. Fetch errors are logged and swallowed; the
        last snapshot is kept. Subscribers must not call poll_once.

        Returns:
            The published ChangeEvent, or None if nothing changed or the fetch failed
        """
        async with self._tick_lock:
            return await self._tick()

    async def _tick(self) -> ChangeEvent | None:
        try:
            snapshot = await self._fetcher.fetch(self._source_url, self.deadline)
        except FetchTimeoutException as e:
            log_with_context(
                self._logger,
                "warning",
                "Polling timed out",
                source_url=self._source_url,
                deadline=self.deadline,
                error_code=e.code.value,
                event_type="poll_timeout",
            )
            return None
        except NowPlayingException as e:
            log_with_context(
                self._logger,
                "error",
                f"Polling failed: {e.message}",
                exc_info=e,
                source_url=self._source_url,
                event_type="poll_failed",
            )
            return None
        except Exception as e:
            log_with_context(
                self._logger,
                "error",
                "Unexpected error while polling",
                exc_info=e,
                source_url=self._source_url,
                error_type=type(e).__name__,
                event_type="poll_error",
            )
            return None

        async with self._lock:
            if snapshots_equivalent(self._last_snapshot, snapshot):
                return None
            event = ChangeEvent.between(self._last_snapshot, snapshot)
            self._last_snapshot = snapshot

        log_with_context(
            self._logger,
            "info",
            "Now playing changed",
            song=snapshot.song if snapshot else None,
            artist=snapshot.artist if snapshot else None,
            artist_changed=event.artist_changed,
            song_changed=event.song_changed,
            artwork_changed=event.artwork_changed,
            event_type="now_playing_changed",
        )
        await self._publish(event)
        return event

    async def _publish(self, event: ChangeEvent) -> None:
        self._prune_subscribers()
        for handler in self._live_subscribers():
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                log_with_context(
                    self._logger,
                    "error",
                    "Change subscriber failed",
                    exc_info=e,
                    subscriber=getattr(handler, "__qualname__", repr(handler)),
                    event_type="subscriber_error",
                )
