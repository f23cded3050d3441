"""Command line entry point for the now playing watcher."""

import asyncio
import signal
from pathlib import Path

import click
import httpx
from dotenv import load_dotenv

from now_playing.config import Settings, load_settings
from now_playing.exceptions import ConfigurationException
from now_playing.lifespan import lifespan
from now_playing.logging_config import get_logger, log_with_context, setup_logging
from now_playing.models import ChangeEvent

logger = get_logger(__name__)


async def run(settings: Settings, client: httpx.AsyncClient | None = None) -> None:
    """Watch until SIGINT or SIGTERM is received.

    Args:
        settings: Application settings
        client: Optional HTTP client; one is created and closed here if omitted
    """
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers; Ctrl+C raises KeyboardInterrupt instead
            break
        installed.append(sig)

    def show_title(event: ChangeEvent) -> None:
        click.echo(event.current.title if event.current is not None else "Nothing playing")

    try:
        async with lifespan(settings, client=client) as watcher:
            watcher.subscribe(show_title)
            await stop_event.wait()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON settings file (source-url, polling-interval, ...). Defaults to environment settings.",
)
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]), default=None)
def main(config_path: Path | None, log_level: str | None) -> None:
    """Watch a media player's now playing page and export the current song."""
    load_dotenv()

    try:
        settings = load_settings(config_path) if config_path is not None else Settings()
    except ConfigurationException as e:
        raise click.ClickException(e.message) from e

    setup_logging(
        log_level or settings.log_level,
        log_file=settings.log_file_path if settings.enable_logging else None,
    )
    log_with_context(
        logger,
        "debug",
        "Settings loaded",
        config_path=str(config_path) if config_path else None,
        event_type="config_loaded",
    )

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
