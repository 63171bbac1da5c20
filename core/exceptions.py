"""Custom exceptions for the Slugline screenplay parsers."""

from typing import Any


class SluglineException(Exception):
    """Base exception for Slugline."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(SluglineException):
    """Raised when a screenplay file is not found."""

    pass


class ParsingException(SluglineException):
    """Raised when script parsing fails."""

    pass
