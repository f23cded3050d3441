"""Runtime lifespan management."""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx

from now_playing import __version__
from now_playing.config import Settings
from now_playing.exporter import NowPlayingExporter
from now_playing.fetcher import HtmlPageFetcher
from now_playing.logging_config import get_logger, log_with_context
from now_playing.watcher import NowPlayingWatcher

logger = get_logger(__name__)


async def log_request(request: httpx.Request) -> None:
    """Event hook to log outgoing requests."""
    log_with_context(
        logger,
        "debug",
        "HTTP Request",
        method=request.method,
        url=str(request.url),
        event_type="http_request",
    )


async def log_response(response: httpx.Response) -> None:
    """Event hook to log responses."""
    log_with_context(
        logger,
        "debug",
        "HTTP Response",
        status_code=response.status_code,
        url=str(response.request.url),
        event_type="http_response",
    )


def create_http_client() -> httpx.AsyncClient:
    """Create the shared HTTP client with granular timeouts and logging hooks."""
    event_hooks: dict[str, list[Callable[..., Any]]] = {
        "request": [log_request],
        "response": [log_response],
    }
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=5.0,  # Connection establishment timeout
            read=10.0,  # Read response timeout
            write=5.0,  # Write operation timeout
            pool=5.0,  # Pool checkout timeout
        ),
        limits=httpx.Limits(
            max_keepalive_connections=2,
            max_connections=4,
            keepalive_expiry=30.0,
        ),
        follow_redirects=True,
        event_hooks=event_hooks,
    )


@asynccontextmanager
async def lifespan(
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[NowPlayingWatcher]:
    """Run a watcher with the file exporter attached.

    Yields the running watcher. The watcher is stopped on exit, even if the
    body raised. A client created here is closed on exit; a client passed in
    stays open and belongs to the caller.
    """
    log_with_context(
        logger,
        "info",
        "Starting now playing watcher",
        version=__version__,
        source_url=settings.source_url,
        event_type="app_startup",
    )

    owns_client = client is None
    if client is None:
        client = create_http_client()
    watcher = NowPlayingWatcher.from_settings(settings, HtmlPageFetcher(client))
    exporter = NowPlayingExporter(settings, client)
    watcher.subscribe(exporter.handle)

    try:
        await watcher.start()
        yield watcher
    except Exception as e:
        log_with_context(
            logger,
            "error",
            "Error during watcher lifespan",
            error=str(e),
            error_type=type(e).__name__,
            event_type="app_error",
        )
        raise
    finally:
        log_with_context(
            logger,
            "info",
            "Shutting down now playing watcher",
            event_type="app_shutdown",
        )
        watcher.unsubscribe(exporter.handle)
        await watcher.aclose()
        if owns_client:
            await client.aclose()
            log_with_context(
                logger,
                "info",
                "HTTP client closed",
                event_type="http_client_cleanup",
            )
