"""
Exception hierarchy for the word game and its mapping to user-facing error kinds.
"""
from typing import Tuple

from .models import ErrorKind


class WordGameError(Exception):
    """Base exception for word game errors."""
    kind = ErrorKind.UNKNOWN
    default_message = "Unknown error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)


class DataUnavailableError(WordGameError):
    """Raised when the word source cannot produce any words."""
    kind = ErrorKind.DATA_UNAVAILABLE
    default_message = "Couldn't read the word list"


class EmptyPoolError(WordGameError):
    """Raised when the word source returned no words at all."""
    kind = ErrorKind.EMPTY_POOL
    default_message = "No words found"


class InsufficientPoolSizeError(WordGameError):
    """Raised when fewer than two questions can be built from the pool."""
    kind = ErrorKind.INSUFFICIENT_POOL_SIZE
    default_message = "Not enough words to create questions"


class RequestExceedsCapacityError(WordGameError):
    """Raised when more questions are requested than the pool can pair."""
    kind = ErrorKind.REQUEST_EXCEEDS_CAPACITY
    default_message = "Question count is greater than available questions"


class WordSourceError(DataUnavailableError):
    """Raised by word sources on read, parse or structure failures."""


def classify_error(error: Exception) -> Tuple[ErrorKind, str]:
    """
    Map an exception to its error kind and a human-readable message.

    Args:
        error: The exception that ended the session

    Returns:
        Tuple of (ErrorKind, message)
    """
    if isinstance(error, WordGameError):
        return error.kind, str(error)

    message = str(error) or WordGameError.default_message
    return ErrorKind.UNKNOWN, message
