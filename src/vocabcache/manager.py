"""Vocabulary cache manager.

Keeps the in-memory index of installed vocabularies, keyed by the identifier
each document asserts about itself, and keeps it in step with the cache
directory and the registry.

Mutating operations (install, update, uninstall, bootstrap) run under a single
``asyncio.Lock``, so only one of them touches the index and the cache
directory at a time. Readers take no lock: the index only changes through
single dict assignments between awaits, so a reader sees either the state
before or after a mutation, never half of one.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import structlog

from vocabcache.errors import ErrorCode, VocabCacheError
from vocabcache.registry import RegistryReconciler, build_truth, find_entry

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime
    from pathlib import Path

    from vocabcache.loader import DocumentLoader
    from vocabcache.models import RegistryVocabulary, Vocabulary
    from vocabcache.protocols import RegistryProtocol, TransportProtocol
    from vocabcache.startup import StartupWarnings
    from vocabcache.store import LocalStore

log = structlog.get_logger()


def is_newer(installed: datetime | None, candidate: datetime | None) -> bool:
    """Whether a candidate issued date supersedes the installed one.

    A missing candidate date is never newer. A missing installed date counts
    as oldest, so any dated candidate is newer. Otherwise the candidate must
    be strictly later.
    """
    if candidate is None:
        return False
    if installed is None:
        return True
    return candidate > installed


class VocabulariesManager:
    """Installs, updates and serves cached vocabularies."""

    def __init__(
        self,
        store: LocalStore,
        loader: DocumentLoader,
        transport: TransportProtocol,
        registry: RegistryProtocol,
        warnings: StartupWarnings,
        defaults: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._loader = loader
        self._transport = transport
        self._registry = registry
        self._warnings = warnings
        self._reconciler = RegistryReconciler(registry, warnings)
        self._defaults = frozenset(defaults)
        self._vocabularies: dict[str, Vocabulary] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, identifier: str) -> Vocabulary | None:
        return self._vocabularies.get(identifier)

    def get_by_url(self, url: str) -> Vocabulary | None:
        """First installed vocabulary whose resolvable location equals ``url``."""
        try:
            wanted = httpx.URL(url)
        except (httpx.InvalidURL, TypeError):
            log.error("vocab_lookup_invalid_url", url=url, exc_info=True)
            return None

        for vocabulary in self.list():
            if vocabulary.resolvable_location is None:
                continue
            try:
                if httpx.URL(vocabulary.resolvable_location) == wanted:
                    return vocabulary
            except httpx.InvalidURL:
                log.error(
                    "vocab_lookup_invalid_url",
                    identifier=vocabulary.identifier,
                    url=vocabulary.resolvable_location,
                    exc_info=True,
                )
        return None

    def list(self) -> list[Vocabulary]:
        return list(self._vocabularies.values())

    def get_i18n_vocab(
        self, identifier: str, lang: str, *, sort_alphabetically: bool = False
    ) -> dict[str, str]:
        """Concept identifier → preferred title in ``lang``.

        Concepts without a term in ``lang`` fall back to their identifier.
        Unknown vocabularies give an empty dict.
        """
        vocabulary = self.get(identifier)
        labels: dict[str, str] = {}
        if vocabulary is not None:
            for concept in vocabulary.concepts:
                term = concept.preferred_term(lang)
                labels[concept.identifier] = concept.identifier if term is None else term.title
            if sort_alphabetically:
                labels = dict(sorted(labels.items(), key=lambda item: item[1]))
        if not labels:
            log.debug("vocab_i18n_empty", identifier=identifier, lang=lang)
        return labels

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def load(self) -> int:
        """Activate cached vocabularies that the registry still knows about.

        Files that fail to load become startup warnings. Files whose
        identifier the registry doesn't list (with a location) are parsed but
        not activated. Returns the number of vocabularies activated.
        """
        async with self._lock:
            truth = await self._reconciler.current_truth()
            counter = 0
            for path in self._store.list_cached_files():
                try:
                    vocabulary = await asyncio.to_thread(self._loader.load, path)
                except VocabCacheError as exc:
                    self._warnings.add(f"Can't load local vocabulary definition {path}", exc)
                    continue

                entry = truth.get(vocabulary.identifier)
                if entry is None or entry.url is None:
                    log.info(
                        "vocab_not_registered", identifier=vocabulary.identifier, path=str(path)
                    )
                    continue
                vocabulary.resolvable_location = entry.url
                self._vocabularies[vocabulary.identifier] = vocabulary
                counter += 1

        log.info("vocabs_loaded", count=counter)
        return counter

    async def install_or_update_defaults(self) -> None:
        """Make sure every mandatory vocabulary is installed at its latest version.

        Raises ``VocabCacheError(INVALID_DATA_DIR)`` when the registry doesn't
        flag every mandatory identifier as latest, or when updating one fails.
        """
        async with self._lock:
            truth = await self._reconciler.current_truth()
            for latest in self._latest_defaults(truth):
                installed = self._find_installed(latest.identifier)
                if installed is None:
                    if latest.url is None:
                        raise VocabCacheError(
                            ErrorCode.INVALID_DATA_DIR,
                            f"Default vocabulary has no resolvable URL: {latest.identifier}",
                        )
                    await self._install(latest.url)
                    continue
                try:
                    await self._update_to_latest(installed, truth)
                except (VocabCacheError, OSError, httpx.HTTPError) as exc:
                    raise VocabCacheError(
                        ErrorCode.INVALID_DATA_DIR,
                        f"Can't update default vocabulary: {installed.identifier}",
                    ) from exc

            self.update_is_latest(self.list(), truth)

    def _latest_defaults(
        self, truth: dict[str, RegistryVocabulary]
    ) -> Sequence[RegistryVocabulary]:
        defaults = [
            entry for entry in truth.values() if entry.identifier in self._defaults and entry.latest
        ]
        if len(defaults) != len(self._defaults):
            missing = sorted(self._defaults - {entry.identifier for entry in defaults})
            log.error("vocab_defaults_unresolved", missing=missing)
            raise VocabCacheError(
                ErrorCode.INVALID_DATA_DIR,
                f"Not all default vocabularies were loaded! Missing: {', '.join(missing)}",
            )
        return defaults

    def _find_installed(self, identifier: str | None) -> Vocabulary | None:
        if identifier is None:
            return None
        wanted = identifier.lower()
        for vocabulary in self.list():
            if vocabulary.identifier.lower() == wanted:
                return vocabulary
        return None

    def update_is_latest(
        self, vocabularies: Sequence[Vocabulary], truth: dict[str, RegistryVocabulary]
    ) -> None:
        """Stamp each vocabulary's latest flag from the registry truth map.

        A vocabulary is latest only when the registry entry for its identifier
        (case-insensitive) is flagged latest and carries the same issued date,
        both dates being absent counting as the same.
        """
        if not vocabularies or not truth:
            return
        for vocabulary in vocabularies:
            entry = find_entry(truth, vocabulary.identifier)
            vocabulary.latest = (
                entry is not None and entry.latest and entry.issued == vocabulary.issued
            )
            log.debug(
                "vocab_latest_stamped",
                identifier=vocabulary.identifier,
                latest=vocabulary.latest,
            )

    # ------------------------------------------------------------------
    # Install / uninstall / update
    # ------------------------------------------------------------------

    async def install(self, url: str) -> Vocabulary:
        """Download, parse and install the vocabulary at ``url``.

        Raises ``VocabCacheError(INVALID_EXTENSION)`` with the cause chained.
        """
        async with self._lock:
            return await self._install(url)

    async def _install(self, url: str) -> Vocabulary:
        tmp_file = self._store.temp_path(url)
        try:
            await self._download(url, tmp_file)
            vocabulary = await asyncio.to_thread(self._loader.load, tmp_file)
            vocabulary.resolvable_location = url
            await self._finish_install(tmp_file, vocabulary)
        except VocabCacheError as exc:
            if exc.code == ErrorCode.INVALID_EXTENSION:
                raise
            log.error("vocab_install_failed", url=url, exc_info=True)
            raise VocabCacheError(
                ErrorCode.INVALID_EXTENSION, f"Failed to install vocabulary {url}"
            ) from exc
        except (OSError, httpx.HTTPError) as exc:
            log.error("vocab_install_failed", url=url, exc_info=True)
            raise VocabCacheError(
                ErrorCode.INVALID_EXTENSION, f"Failed to install vocabulary {url}"
            ) from exc
        finally:
            tmp_file.unlink(missing_ok=True)

        log.info("vocab_installed", identifier=vocabulary.identifier, url=url)
        return vocabulary

    async def _download(self, url: str, dest: Path) -> None:
        status = await self._transport.download(url, dest)
        if not 200 <= status < 300:
            log.error("vocab_download_failed", url=url, status_code=status)
            raise VocabCacheError(
                ErrorCode.DOWNLOAD_FAILED,
                f"Failed to download vocabulary: {url}. Response={status}",
            )

    async def _finish_install(self, tmp_file: Path, vocabulary: Vocabulary) -> None:
        # Never replaces an existing file; it can only be uninstalled or updated
        await asyncio.to_thread(self._store.commit, tmp_file, vocabulary.identifier)
        self._vocabularies[vocabulary.identifier] = vocabulary

    async def uninstall(self, identifier: str) -> None:
        """Remove ``identifier`` from the index and delete its cache file."""
        async with self._lock:
            await self._uninstall(identifier)

    async def _uninstall(self, identifier: str) -> None:
        if identifier not in self._vocabularies:
            log.warning("vocab_not_installed", identifier=identifier)
            return
        del self._vocabularies[identifier]
        await asyncio.to_thread(self._store.remove, identifier)

    async def _update_to_latest(
        self, installed: Vocabulary, truth: dict[str, RegistryVocabulary]
    ) -> bool:
        latest = find_entry(truth, installed.identifier)
        if latest is None or not latest.latest:
            return False
        if not is_newer(installed.issued, latest.issued):
            return False
        if latest.url is None:
            log.info("vocab_update_skipped", identifier=installed.identifier, reason="no_url")
            return False

        tmp_file = self._store.temp_path(latest.url)
        try:
            await self._download(latest.url, tmp_file)
            vocabulary = await asyncio.to_thread(self._loader.load, tmp_file)
            if vocabulary.identifier.lower() != installed.identifier.lower():
                raise VocabCacheError(
                    ErrorCode.IDENTIFIER_MISMATCH,
                    f"Downloaded vocabulary {vocabulary.identifier} from {latest.url} "
                    f"doesn't match installed {installed.identifier}",
                )
            vocabulary.resolvable_location = latest.url
            await asyncio.to_thread(self._store.remove, installed.identifier)
            await asyncio.to_thread(self._store.commit, tmp_file, vocabulary.identifier)
            # Readers see either the old entry or the new one, never neither
            self._vocabularies[vocabulary.identifier] = vocabulary
            if vocabulary.identifier != installed.identifier:
                self._vocabularies.pop(installed.identifier, None)
        finally:
            tmp_file.unlink(missing_ok=True)

        log.info(
            "vocab_updated",
            identifier=vocabulary.identifier,
            issued=vocabulary.issued.isoformat() if vocabulary.issued else None,
        )
        return True

    async def update_if_changed(self, identifier: str) -> bool:
        """Refresh the cache file of ``identifier`` if the registry copy changed.

        Registry and transport errors propagate. When the file changed it is
        reloaded and replaces the index entry; if the new file cannot be
        loaded the entry is dropped and the load error propagates.
        """
        async with self._lock:
            installed = self.get(identifier)
            if installed is None:
                return False

            truth = build_truth(await self._registry.list_vocabularies())
            matched = find_entry(truth, identifier)
            if matched is None or matched.url is None:
                return False

            path = self._store.path_for(identifier)
            changed = await self._transport.download_if_changed(matched.url, path)
            if not changed:
                return False

            try:
                reloaded = await asyncio.to_thread(self._loader.load, path)
                if reloaded.identifier.lower() != identifier.lower():
                    raise VocabCacheError(
                        ErrorCode.IDENTIFIER_MISMATCH,
                        f"Refreshed file for {identifier} now declares {reloaded.identifier}",
                    )
            except VocabCacheError:
                # The file on disk no longer backs the indexed document
                self._vocabularies.pop(installed.identifier, None)
                log.warning("vocab_refresh_invalid", identifier=identifier, path=str(path))
                raise
            reloaded.resolvable_location = matched.url
            self.update_is_latest([reloaded], truth)
            self._vocabularies[identifier] = reloaded

        log.info("vocab_refreshed", identifier=identifier, url=matched.url)
        return True
