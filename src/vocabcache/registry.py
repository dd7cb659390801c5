"""Registry access: listing published vocabularies and building the truth map."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog
from pydantic import ValidationError

from vocabcache.errors import ErrorCode, VocabCacheError
from vocabcache.models import RegistryVocabulary

if TYPE_CHECKING:
    from vocabcache.protocols import RegistryProtocol
    from vocabcache.startup import StartupWarnings

log = structlog.get_logger()


class RegistryClient:
    """Fetches the registry's thesaurus listing.

    The listing is JSON of the form ``{"thesauri": [{"identifier": ...,
    "url": ..., "issued": ..., "isLatest": ..., "title": ...}, ...]}``.
    """

    def __init__(
        self, client: httpx.AsyncClient, url: str, *, timeout: float | None = None
    ) -> None:
        self._client = client
        self.url = url
        self._timeout = httpx.USE_CLIENT_DEFAULT if timeout is None else timeout

    async def list_vocabularies(self) -> list[RegistryVocabulary]:
        try:
            response = await self._client.get(self.url, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.error("registry_unavailable", url=self.url, exc_info=True)
            raise VocabCacheError(
                ErrorCode.REGISTRY_UNAVAILABLE,
                f"Registry at {self.url} could not be reached",
                recoverable=True,
            ) from exc

        rows = payload.get("thesauri", []) if isinstance(payload, dict) else []
        entries = []
        for row in rows:
            try:
                entries.append(RegistryVocabulary.model_validate(row))
            except ValidationError:
                log.warning("registry_row_invalid", row=row, exc_info=True)
        log.info("registry_listed", url=self.url, count=len(entries))
        return entries


def build_truth(entries: list[RegistryVocabulary]) -> dict[str, RegistryVocabulary]:
    """Index registry rows by identifier, preferring the row flagged latest."""
    truth: dict[str, RegistryVocabulary] = {}
    for entry in entries:
        if entry.identifier is None:
            continue
        current = truth.get(entry.identifier)
        if current is None or (entry.latest and not current.latest):
            truth[entry.identifier] = entry
    return truth


def find_entry(
    entries: dict[str, RegistryVocabulary], identifier: str
) -> RegistryVocabulary | None:
    """Case-insensitive lookup of ``identifier`` in a truth map."""
    entry = entries.get(identifier)
    if entry is not None:
        return entry
    wanted = identifier.lower()
    for key, value in entries.items():
        if key.lower() == wanted:
            return value
    return None


class RegistryReconciler:
    """Builds the identifier → registry entry map used for install decisions."""

    def __init__(self, registry: RegistryProtocol, warnings: StartupWarnings) -> None:
        self._registry = registry
        self._warnings = warnings

    async def current_truth(self) -> dict[str, RegistryVocabulary]:
        """Map of every registry-known identifier to its current entry.

        An unreachable registry yields an empty map and two startup warnings;
        callers carry on with what is already cached.
        """
        try:
            entries = await self._registry.list_vocabularies()
        except (VocabCacheError, httpx.HTTPError) as exc:
            self._warnings.add(f"Registry error: {exc}", exc)
            self._warnings.add(
                "Vocabularies couldn't be loaded from the registry; only cached copies are used"
            )
            return {}
        return build_truth(entries)
