"""
Error taxonomy for mail-search.

- ConfigurationError: a required collaborator or setting is missing. Fatal
  to the call, never retried.
- RetrievalError: an embedding or vector store call failed. Always carries
  the underlying cause.
- DimensionMismatchError: a vector of the wrong width was handed to a store.
  This is a caller error, so it is also a ValueError.

Empty indexes, unmatched queries and missing optional collaborators are not
errors; they degrade to empty or partial results.
"""

from typing import Optional


class MailSearchError(Exception):
    """Base class for all errors raised by mail-search."""

    code = "MAIL_SEARCH_ERROR"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class ConfigurationError(MailSearchError):
    """Raised when an operation needs configuration that is not present."""

    code = "CONFIGURATION_ERROR"


class RetrievalError(MailSearchError):
    """Raised when embedding or vector store access fails."""

    code = "RETRIEVAL_ERROR"


class DimensionMismatchError(MailSearchError, ValueError):
    """Raised when a vector does not match the store's configured width."""

    code = "DIMENSION_MISMATCH"

    def __init__(self, expected: int, actual: int, context: str = "vector"):
        super().__init__(f"{context} has {actual} dimensions, store expects {expected}")
        self.expected = expected
        self.actual = actual
