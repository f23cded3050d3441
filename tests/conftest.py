"""Pytest configuration and shared fixtures."""

import asyncio
from collections.abc import Iterable
from unittest.mock import AsyncMock

import httpx
import pytest

from now_playing.config import Settings
from now_playing.models import Snapshot

NOW_PLAYING_PAGE = """
<html>
  <body>
    <div class="container">
      <div class="card horizontal">
        <div class="card-image">
          <img src="http://x/a.jpg" alt="album art">
        </div>
        <div class="card-stacked">
          <div class="card-content">
            Bohemian Rhapsody
            Queen
            A Night at the Opera
          </div>
        </div>
      </div>
    </div>
  </body>
</html>
"""

NOTHING_PLAYING_PAGE = """
<html>
  <body>
    <div class="container">
      <p>Nothing is playing right now.</p>
    </div>
  </body>
</html>
"""

MALFORMED_PAGE = """
<html>
  <body>
    <div class="card horizontal">
      <img src="http://x/a.jpg">
      <div class="card-content">
        Bohemian Rhapsody
      </div>
    </div>
  </body>
</html>
"""


class FakeFetcher:
    """Fetcher returning queued results; exceptions in the queue are raised.

    Once the queue is exhausted the last result is repeated. With ``hang`` set,
    every fetch blocks until cancelled.
    """

    def __init__(self, results: Iterable[Snapshot | None | Exception] = (), hang: bool = False):
        self.results = list(results)
        self.hang = hang
        self.calls: list[tuple[str, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = 0
        self._last: Snapshot | None | Exception = None

    async def fetch(self, source_url: str, deadline: float) -> Snapshot | None:
        self.calls.append((source_url, deadline))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.hang:
                await asyncio.Event().wait()
            await asyncio.sleep(0)
            if self.results:
                self._last = self.results.pop(0)
            if isinstance(self._last, Exception):
                raise self._last
            return self._last
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1


@pytest.fixture
def queen() -> Snapshot:
    return Snapshot(artist="Queen", song="Bohemian Rhapsody", artwork_url="http://x/a.jpg")


@pytest.fixture
def mock_http_client():
    """Mock httpx.AsyncClient for external calls."""
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get = AsyncMock()
    mock_client.aclose = AsyncMock()
    return mock_client


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing all exported files into a temporary directory."""
    return Settings(
        source_url="http://localhost:9863/",
        polling_interval=100,
        album_art_path=tmp_path / "album.png",
        song_info_path=tmp_path / "now-playing.txt",
        song_info_format="{song} by {artist}",
        log_file_path=tmp_path / "log.txt",
        enable_logging=False,
    )


def make_response(status_code: int = 200, text: str = "", content: bytes | None = None, url: str = "http://localhost:9863/"):
    """Build a real httpx.Response bound to a request so raise_for_status works."""
    request = httpx.Request("GET", url)
    if content is not None:
        return httpx.Response(status_code, content=content, request=request)
    return httpx.Response(status_code, text=text, request=request)


@pytest.fixture
def fake_fetcher():
    """Factory for FakeFetcher instances."""
    return FakeFetcher


@pytest.fixture
def now_playing_page() -> str:
    return NOW_PLAYING_PAGE


@pytest.fixture
def nothing_playing_page() -> str:
    return NOTHING_PLAYING_PAGE


@pytest.fixture
def malformed_page() -> str:
    return MALFORMED_PAGE


@pytest.fixture
def response_factory():
    """Factory for httpx responses."""
    return make_response
