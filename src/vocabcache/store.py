"""On-disk vocabulary cache directory.

One file per installed identifier, named by ``identifiers.cache_filename``.
Files are immutable once committed: an existing file is never replaced by
``commit``, only deleted by ``remove``.
"""

from __future__ import annotations

import shutil
import uuid
from pathlib import Path

import structlog

from vocabcache.identifiers import CACHE_SUFFIX, cache_filename, download_filename

log = structlog.get_logger()


class LocalStore:
    """Resolves identifiers to cache files and installs downloaded files."""

    def __init__(self, cache_dir: Path, tmp_dir: Path, suffix: str = CACHE_SUFFIX) -> None:
        self.cache_dir = cache_dir
        self.tmp_dir = tmp_dir
        self.suffix = suffix

    def path_for(self, identifier: str) -> Path:
        """Cache file path for ``identifier``. Does not touch the disk."""
        return self.cache_dir / cache_filename(identifier, self.suffix)

    def temp_path(self, url: str) -> Path:
        """Unique temp file path for downloading ``url``."""
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        return self.tmp_dir / f"{uuid.uuid4().hex[:8]}-{download_filename(url)}"

    def list_cached_files(self) -> list[Path]:
        """All cache files, matching the suffix case-insensitively."""
        if not self.cache_dir.is_dir():
            return []
        suffix = self.suffix.lower()
        return sorted(
            p for p in self.cache_dir.iterdir() if p.is_file() and p.name.lower().endswith(suffix)
        )

    def commit(self, temp_file: Path, identifier: str) -> bool:
        """Move ``temp_file`` into place for ``identifier``.

        Returns ``False`` without touching the existing file when one is
        already installed (the temp file is discarded). ``OSError`` from the
        move propagates; a failed move leaves nothing at the destination.
        """
        target = self.path_for(identifier)
        if target.exists():
            log.debug("vocab_file_exists", identifier=identifier, path=str(target))
            temp_file.unlink(missing_ok=True)
            return False

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        try:
            shutil.move(temp_file, target)
        except OSError:
            log.error("vocab_commit_failed", identifier=identifier, path=str(target), exc_info=True)
            target.unlink(missing_ok=True)
            raise
        log.info("vocab_file_committed", identifier=identifier, path=str(target))
        return True

    def remove(self, identifier: str) -> bool:
        """Delete the cache file for ``identifier``. Returns whether one existed."""
        target = self.path_for(identifier)
        try:
            target.unlink()
        except FileNotFoundError:
            log.warning("vocab_file_missing", identifier=identifier, path=str(target))
            return False
        log.info("vocab_file_removed", identifier=identifier, path=str(target))
        return True
