"""Exports now playing changes to files for streaming overlays."""

from pathlib import Path

import httpx

from now_playing.config import Settings
from now_playing.exceptions import ExportException
from now_playing.logging_config import get_logger, log_with_context
from now_playing.models import ChangeEvent

ARTWORK_TIMEOUT_SECONDS = 10.0

logger = get_logger(__name__)


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        raise ExportException(f"Failed to delete {path}: {e}", details={"file_path": str(path)}) from e


class NowPlayingExporter:
    """Writes the song info text file and the album artwork file.

    Subscribe ``exporter.handle`` to a watcher and keep the exporter alive
    for as long as it should receive events. Failures are logged and never
    reach the watcher.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self._settings = settings
        self._client = client

    async def handle(self, event: ChangeEvent) -> None:
        """Apply a change event to the exported files."""
        if event.song_changed or event.artist_changed:
            try:
                self.update_song_info(event)
            except ExportException as e:
                log_with_context(
                    logger,
                    "error",
                    e.message,
                    exc_info=e,
                    event_type="export_song_info_failed",
                )

        if event.artwork_changed:
            try:
                await self.update_artwork(event)
            except ExportException as e:
                log_with_context(
                    logger,
                    "error",
                    e.message,
                    exc_info=e,
                    event_type="export_artwork_failed",
                )

    def update_song_info(self, event: ChangeEvent) -> None:
        """Write the formatted song info, or delete the file when nothing is playing.

        Raises:
            ExportException: If the file cannot be written or deleted
        """
        path = self._settings.song_info_path
        current = event.current
        if current is None or not current.song:
            _remove(path)
            return

        text = self._settings.format_song_info(current.song, current.artist)
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise ExportException(f"Failed to write song info: {e}", details={"file_path": str(path)}) from e

        log_with_context(
            logger,
            "info",
            "Song info exported",
            file_path=str(path),
            song=current.song,
            artist=current.artist,
            event_type="export_song_info",
        )

    async def update_artwork(self, event: ChangeEvent) -> None:
        """Download the new artwork, or delete the file when there is none.

        Raises:
            ExportException: If the download or the file write fails
        """
        path = self._settings.album_art_path
        artwork_url = event.current.artwork_url if event.current is not None else None
        if not artwork_url:
            _remove(path)
            return

        try:
            response = await self._client.get(artwork_url, timeout=ARTWORK_TIMEOUT_SECONDS, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExportException(
                f"Failed to download artwork: {str(e)}",
                details={"artwork_url": artwork_url},
            ) from e

        try:
            path.write_bytes(response.content)
        except OSError as e:
            raise ExportException(f"Failed to write artwork: {e}", details={"file_path": str(path)}) from e

        log_with_context(
            logger,
            "info",
            "Artwork exported",
            file_path=str(path),
            artwork_url=artwork_url,
            event_type="export_artwork",
        )
