"""Shared fixtures: thesaurus documents and in-memory collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import structlog

from vocabcache.errors import ErrorCode, VocabCacheError
from vocabcache.models import RegistryVocabulary

if TYPE_CHECKING:
    from pathlib import Path


def make_thesaurus(
    identifier: str,
    issued: str | None = None,
    concepts: dict[str, dict[str, str]] | None = None,
) -> bytes:
    """Render a minimal GBIF thesaurus document."""
    if concepts is None:
        concepts = {"en": {"en": "English", "de": "Englisch"}, "fr": {"en": "French"}}
    issued_attr = f' dc:issued="{issued}"' if issued else ""
    body = []
    for concept_id, terms in concepts.items():
        term_xml = "".join(
            f'<term dc:title="{title}" xml:lang="{lang}"/>' for lang, title in terms.items()
        )
        body.append(
            f'<concept dc:identifier="{concept_id}" dc:URI="{identifier}/{concept_id}">'
            f"<preferred>{term_xml}</preferred></concept>"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<thesaurus xmlns="http://rs.gbif.org/thesaurus/" xmlns:dc="http://purl.org/dc/terms/"'
        f' dc:identifier="{identifier}" dc:title="Test vocabulary"{issued_attr}>'
        + "".join(body)
        + "</thesaurus>"
    ).encode()


class FakeTransport:
    """In-memory TransportProtocol: serves documents from a dict of url → bytes."""

    def __init__(self, documents: dict[str, bytes] | None = None) -> None:
        self.documents = documents or {}
        self.status: dict[str, int] = {}
        self.changed: dict[str, bytes] = {}
        self.downloads: list[str] = []

    async def download(self, url: str, dest: Path) -> int:
        self.downloads.append(url)
        status = self.status.get(url, 200 if url in self.documents else 404)
        if status == 200:
            dest.write_bytes(self.documents[url])
        return status

    async def download_if_changed(self, url: str, path: Path) -> bool:
        self.downloads.append(url)
        if url not in self.changed:
            return False
        path.write_bytes(self.changed.pop(url))
        return True


class FakeRegistry:
    """In-memory RegistryProtocol."""

    def __init__(self, entries: list[RegistryVocabulary] | None = None) -> None:
        self.entries = entries or []
        self.available = True

    async def list_vocabularies(self) -> list[RegistryVocabulary]:
        if not self.available:
            raise VocabCacheError(ErrorCode.REGISTRY_UNAVAILABLE, "registry down", recoverable=True)
        return list(self.entries)


def registry_entry(
    identifier: str,
    url: str | None = None,
    issued: str | None = None,
    latest: bool = True,
) -> RegistryVocabulary:
    return RegistryVocabulary(
        identifier=identifier,
        url=url if url is not None else f"{identifier}.xml",
        issued=issued,
        latest=latest,
    )


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo any setup_logging() a test triggered."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def thesaurus():
    """Factory for thesaurus XML documents."""
    return make_thesaurus


@pytest.fixture()
def entry():
    """Factory for registry rows."""
    return registry_entry


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def registry() -> FakeRegistry:
    return FakeRegistry()
