"""Fetcher for the media player's now playing HTML page."""

import asyncio
import re

import httpx
from bs4 import BeautifulSoup, Tag

from now_playing.exceptions import FetchNetworkException, FetchTimeoutException, PageParseException
from now_playing.logging_config import get_logger, log_with_context
from now_playing.models import Snapshot

CONTAINER_CLASS = "card horizontal"
CONTENT_CLASS = "card-content"

# Only \n and \r\n separate lines; other Unicode line breaks stay inside a line
_LINE_BREAK = re.compile(r"\r?\n")

logger = get_logger(__name__)


def _first_with_class(root: Tag, tag: str, class_name: str) -> Tag | None:
    """Find the first descendant tag whose class attribute is exactly class_name."""
    for node in root.find_all(tag):
        classes = node.get("class")
        if classes is not None and " ".join(classes) == class_name:
            return node
    return None


def extract_snapshot(html: str) -> Snapshot | None:
    """Extract the now playing snapshot from page markup.

    Args:
        html: Page markup

    Returns:
        Snapshot, or None if the page shows nothing playing

    Raises:
        PageParseException: If the now playing card is present but malformed
    """
    soup = BeautifulSoup(html, "html.parser")

    container = _first_with_class(soup, "div", CONTAINER_CLASS)
    if container is None:
        return None

    image = container.find("img")
    artwork_url = image.get("src") if image is not None else None

    content = _first_with_class(container, "div", CONTENT_CLASS)
    if content is None:
        raise PageParseException(
            "Now playing card has no content element",
            details={"container_class": CONTAINER_CLASS},
        )

    lines = [line.strip() for line in _LINE_BREAK.split(content.get_text())]
    lines = [line for line in lines if line]
    if len(lines) < 2:
        raise PageParseException(
            f"Expected song and artist lines, found {len(lines)}",
            details={"lines": lines},
        )

    song, artist = lines[0], lines[1]
    return Snapshot(artist=artist, song=song, artwork_url=artwork_url or None)


class HtmlPageFetcher:
    """Fetches and parses the now playing page over a shared HTTP client."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def fetch(self, source_url: str, deadline: float) -> Snapshot | None:
        """Fetch the page once, bounded by a deadline.

        Args:
            source_url: URL of the now playing page
            deadline: Maximum seconds allowed for the whole round-trip

        Returns:
            Snapshot, or None when nothing is playing

        Raises:
            FetchTimeoutException: If the deadline elapsed or the request timed out
            FetchNetworkException: On connection, DNS or HTTP status failures
            PageParseException: If the page markup is unexpected
        """
        try:
            async with asyncio.timeout(deadline):
                response = await self._client.get(source_url, follow_redirects=True)
                response.raise_for_status()
        except TimeoutError as e:
            raise FetchTimeoutException(details={"source_url": source_url, "deadline": deadline}) from e
        except httpx.TimeoutException as e:
            raise FetchTimeoutException(details={"source_url": source_url, "deadline": deadline}) from e
        except httpx.HTTPStatusError as e:
            raise FetchNetworkException(
                f"Now playing page returned HTTP {e.response.status_code}",
                details={"source_url": source_url, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise FetchNetworkException(
                f"Failed to fetch now playing page: {str(e)}",
                details={"source_url": source_url, "error_type": "network_error"},
            ) from e

        html = response.content.decode("utf-8", errors="replace")
        snapshot = extract_snapshot(html)
        log_with_context(
            logger,
            "debug",
            "Fetched now playing page",
            source_url=source_url,
            playing=snapshot is not None,
            event_type="fetch_complete",
        )
        return snapshot
