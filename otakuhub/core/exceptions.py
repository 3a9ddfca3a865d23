"""
Core Exceptions - Custom exception classes for OtakuHub.

This module defines the exception hierarchy used throughout the content
acquisition engine. Transport and rendering failures are raised by the
low-level layers and recovered inside each source operation, so callers of
the facade only ever see caller errors (unknown source, unsupported call).
"""

from typing import Optional, Any


class OtakuHubError(Exception):
    """Base exception class for all OtakuHub-specific errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        """
        Initialize OtakuHub error.

        Args:
            message: Human-readable error message
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class ConfigurationError(OtakuHubError):
    """Raised when configuration-related errors occur."""

    def __init__(self, message: str, config_path: Optional[str] = None, details: Optional[Any] = None):
        """
        Initialize configuration error.

        Args:
            message: Error description
            config_path: Path to the problematic configuration file
            details: Additional error context
        """
        super().__init__(message, details)
        self.config_path = config_path


class SourceError(OtakuHubError):
    """Raised when a source cannot be found, loaded or addressed."""

    def __init__(self, message: str, source_name: Optional[str] = None, details: Optional[Any] = None):
        """
        Initialize source error.

        Args:
            message: Error description
            source_name: Name of the problematic source
            details: Additional error context
        """
        super().__init__(message, details)
        self.source_name = source_name


class UnsupportedOperation(SourceError):
    """Raised when a source does not offer the requested capability."""

    def __init__(self, source_name: str, operation: str):
        super().__init__(
            f"Source '{source_name}' does not support '{operation}'",
            source_name=source_name,
        )
        self.operation = operation


class FetchFailure(OtakuHubError):
    """Raised when an outbound HTTP request fails (timeout, refused, non-2xx)."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None, details: Optional[Any] = None):
        """
        Initialize fetch failure.

        Args:
            message: Error description
            url: URL that caused the error
            status_code: HTTP status code if applicable
            details: Additional error context
        """
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class RenderingFailure(OtakuHubError):
    """Raised when the headless browser cannot launch, navigate or interact."""

    def __init__(self, message: str, url: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, details)
        self.url = url


class CacheUnavailable(OtakuHubError):
    """Raised by a cache tier whose backing store cannot be reached."""


# Export all exception classes
__all__ = [
    "OtakuHubError",
    "ConfigurationError",
    "SourceError",
    "UnsupportedOperation",
    "FetchFailure",
    "RenderingFailure",
    "CacheUnavailable",
]
