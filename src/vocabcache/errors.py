"""Error types raised across the vocabulary cache.

Every failure the engine reports to its caller is a ``VocabCacheError``
carrying an ``ErrorCode``. The original exception, when there is one, is
chained via ``raise ... from exc`` so it stays available for logging.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_VOCABULARY = "INVALID_VOCABULARY"
    INVALID_EXTENSION = "INVALID_EXTENSION"
    INVALID_DATA_DIR = "INVALID_DATA_DIR"
    IDENTIFIER_MISMATCH = "IDENTIFIER_MISMATCH"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    REGISTRY_UNAVAILABLE = "REGISTRY_UNAVAILABLE"


class VocabCacheError(Exception):
    """Domain error with a machine-readable code."""

    def __init__(self, code: ErrorCode, message: str, *, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class VocabularyParseError(Exception):
    """The parser rejected the document content."""


class ParserUnavailableError(Exception):
    """The parsing subsystem itself could not be set up."""
