"""Custom exceptions for the now playing watcher."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error reporting."""

    # Generic errors
    NOW_PLAYING_ERROR = "NOW_PLAYING_ERROR"

    # Fetch errors
    FETCH_ERROR = "FETCH_ERROR"
    FETCH_TIMEOUT = "FETCH_TIMEOUT"
    FETCH_NETWORK_ERROR = "FETCH_NETWORK_ERROR"
    PAGE_PARSE_ERROR = "PAGE_PARSE_ERROR"

    # Configuration errors
    CONFIG_ERROR = "CONFIG_ERROR"
    CONFIG_INVALID = "CONFIG_INVALID"

    # Export errors
    EXPORT_ERROR = "EXPORT_ERROR"


class NowPlayingException(Exception):
    """Base exception for now playing errors.

    All custom exceptions inherit from this class so the watcher can
    catch and log them at a single boundary.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.NOW_PLAYING_ERROR,
        details: dict[str, Any] | None = None,
    ):
        """Initialize now playing exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class FetchException(NowPlayingException):
    """Fetching the now playing page failed."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.FETCH_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)


class FetchTimeoutException(FetchException):
    """The fetch did not complete before its deadline."""

    def __init__(self, message: str = "Polling timed out", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.FETCH_TIMEOUT, details=details)


class FetchNetworkException(FetchException):
    """Connection, DNS or HTTP status failure."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.FETCH_NETWORK_ERROR, details=details)


class PageParseException(FetchException):
    """The page was reachable but its markup was not what we expect."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.PAGE_PARSE_ERROR, details=details)


class ConfigurationException(NowPlayingException):
    """Configuration errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)


class ExportException(NowPlayingException):
    """Writing the song info or artwork file failed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.EXPORT_ERROR, details=details)
