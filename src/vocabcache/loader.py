"""Load cached vocabulary files from disk."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from vocabcache.errors import (
    ErrorCode,
    ParserUnavailableError,
    VocabCacheError,
    VocabularyParseError,
)

if TYPE_CHECKING:
    from pathlib import Path

    from vocabcache.models import Vocabulary
    from vocabcache.protocols import ParserProtocol

log = structlog.get_logger()


class DocumentLoader:
    """Reads a vocabulary file and stamps it with the file's mtime."""

    def __init__(self, parser: ParserProtocol) -> None:
        self._parser = parser

    def load(self, path: Path) -> Vocabulary:
        """Parse ``path`` into a Vocabulary.

        Raises ``VocabCacheError(INVALID_VOCABULARY)`` when the file can't be
        read, can't be parsed, or the parser can't be set up. The original
        exception is chained.
        """
        try:
            with path.open("rb") as fh:
                vocabulary = self._parser.parse(fh)
            vocabulary.modified = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
        except OSError as exc:
            log.error("vocab_load_failed", reason="load_io", path=str(path), exc_info=True)
            raise VocabCacheError(
                ErrorCode.INVALID_VOCABULARY, f"Can't access local vocabulary file {path}"
            ) from exc
        except VocabularyParseError as exc:
            log.error("vocab_load_failed", reason="parse_error", path=str(path), exc_info=True)
            raise VocabCacheError(
                ErrorCode.INVALID_VOCABULARY, f"Can't parse local vocabulary file {path}"
            ) from exc
        except ParserUnavailableError as exc:
            log.error(
                "vocab_load_failed", reason="parser_unavailable", path=str(path), exc_info=True
            )
            raise VocabCacheError(
                ErrorCode.INVALID_VOCABULARY, f"Can't create vocabulary parser for {path}"
            ) from exc

        log.info("vocab_loaded", identifier=vocabulary.identifier, path=str(path))
        return vocabulary
