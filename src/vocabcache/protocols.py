"""Protocol interfaces for the collaborators the cache manager consumes.

The manager references these protocols, not the concrete implementations.
This allows:
- Tests to use lightweight in-memory implementations
- Other transports or registries to be swapped in without touching the engine
"""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO, Protocol

if TYPE_CHECKING:
    from pathlib import Path

    from vocabcache.models import RegistryVocabulary, Vocabulary


class TransportProtocol(Protocol):
    """Interface for fetching vocabulary documents."""

    async def download(self, url: str, dest: Path) -> int: ...

    async def download_if_changed(self, url: str, path: Path) -> bool: ...


class ParserProtocol(Protocol):
    """Interface for turning a document byte stream into a Vocabulary."""

    def parse(self, stream: BinaryIO) -> Vocabulary: ...


class RegistryProtocol(Protocol):
    """Interface for listing the vocabularies the registry publishes."""

    async def list_vocabularies(self) -> list[RegistryVocabulary]: ...
