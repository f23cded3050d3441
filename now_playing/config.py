import json
import re
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from now_playing.exceptions import ConfigurationException, ErrorCode
from now_playing.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

# Keys used by the settings file, shared with the desktop application's config.json
SETTINGS_FILE_KEYS = {
    "source-url": "source_url",
    "polling-interval": "polling_interval",
    "album-art-path": "album_art_path",
    "song-info-path": "song_info_path",
    "song-info-format": "song_info_format",
    "log-file-path": "log_file_path",
    "enable-logging": "enable_logging",
}

_TRAILING_COMMA = re.compile(r",(\s*[\]}])")


class Settings(BaseSettings):
    """Watcher settings with validation.

    Values come from init arguments, then NOW_PLAYING_* environment variables,
    then the .env file. Every field has a default matching the desktop
    application, so an empty environment yields a working configuration.
    """

    # Remote page served by the media player
    source_url: str = Field(default="http://localhost:9863/", description="URL of the now playing page")
    polling_interval: int = Field(default=1000, ge=50, description="Polling interval in milliseconds")

    # Exported files
    album_art_path: Path = Field(default=Path("./album.png"), description="Where to write the album artwork")
    song_info_path: Path = Field(default=Path("./now-playing.txt"), description="Where to write the song info text")
    song_info_format: str = Field(
        default="{song} by {artist}",
        min_length=1,
        description="Song info template; {song} and {artist} are replaced",
    )

    # Logging
    log_file_path: Path = Field(default=Path("./log.txt"), description="JSON log file path")
    enable_logging: bool = Field(default=False, description="Write logs to log_file_path")
    log_level: str = Field(default="INFO", description="Console log level")

    model_config = SettingsConfigDict(
        env_prefix="NOW_PLAYING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    @field_validator("source_url", mode="after")
    @classmethod
    def validate_source_url(cls, v: str) -> str:
        """Ensure source URL is an http(s) URL."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("source_url must be a valid http:// or https:// URL")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is a standard logging level name."""
        v = v.strip().upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"log_level must be a standard level name, got {v!r}")
        return v

    @property
    def polling_interval_seconds(self) -> float:
        """Polling interval converted to seconds."""
        return self.polling_interval / 1000

    def format_song_info(self, song: str, artist: str) -> str:
        """Render the song info template."""
        return self.song_info_format.replace("{song}", song).replace("{artist}", artist)


def load_settings(path: Path) -> Settings:
    """Load settings from a JSON settings file.

    Missing keys fall back to environment/defaults. A missing file yields
    default settings. Trailing commas are tolerated.

    Args:
        path: Path to the JSON settings file

    Returns:
        Settings instance

    Raises:
        ConfigurationException: If the file is not valid JSON or holds invalid values
    """
    path = Path(path)
    if not path.exists():
        log_with_context(
            logger,
            "warning",
            "Settings file not found, using defaults",
            file_path=str(path),
            event_type="config_file_missing",
        )
        return Settings()

    try:
        content = _TRAILING_COMMA.sub(r"\1", path.read_text(encoding="utf-8"))
        data = json.loads(content)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationException(
            f"Failed to read settings file: {e}",
            code=ErrorCode.CONFIG_INVALID,
            details={"file_path": str(path)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationException(
            "Settings file must contain a JSON object",
            code=ErrorCode.CONFIG_INVALID,
            details={"file_path": str(path)},
        )

    values = {SETTINGS_FILE_KEYS[key]: value for key, value in data.items() if key in SETTINGS_FILE_KEYS}
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationException(
            f"Invalid settings in {path}: {e}",
            code=ErrorCode.CONFIG_INVALID,
            details={"file_path": str(path), "errors": e.errors(include_url=False)},
        ) from e


def save_settings(settings: Settings, path: Path) -> None:
    """Write settings to a JSON settings file, replacing any existing file.

    Raises:
        ConfigurationException: If the file cannot be written
    """
    path = Path(path)
    dumped = settings.model_dump(mode="json")
    data = {key: dumped[field] for key, field in SETTINGS_FILE_KEYS.items()}
    try:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    except OSError as e:
        raise ConfigurationException(
            f"Failed to write settings file: {e}",
            details={"file_path": str(path)},
        ) from e

