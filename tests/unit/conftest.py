"""Unit-specific fixtures (temp directories and in-memory collaborators only)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from vocabcache.loader import DocumentLoader
from vocabcache.manager import VocabulariesManager
from vocabcache.parser import ThesaurusParser
from vocabcache.startup import StartupWarnings
from vocabcache.store import LocalStore

if TYPE_CHECKING:
    from pathlib import Path

LANGUAGE = "http://iso.org/639-1"
COUNTRY = "http://iso.org/iso3166-1/alpha2"


@pytest.fixture()
def store(tmp_path: Path) -> LocalStore:
    return LocalStore(tmp_path / "config" / ".vocabularies", tmp_path / "tmp")


@pytest.fixture()
def loader() -> DocumentLoader:
    return DocumentLoader(ThesaurusParser())


@pytest.fixture()
def warnings() -> StartupWarnings:
    return StartupWarnings()


@pytest.fixture()
def manager(store, loader, transport, registry, warnings) -> VocabulariesManager:
    """Manager over a temp cache dir, with two mandatory vocabularies."""
    return VocabulariesManager(
        store=store,
        loader=loader,
        transport=transport,
        registry=registry,
        warnings=warnings,
        defaults=[LANGUAGE, COUNTRY],
    )
