from __future__ import annotations

from datetime import UTC, date, datetime

from pydantic import BaseModel, field_validator


def coerce_issued(value: object) -> datetime | None:
    """Normalise an issued date to an aware UTC datetime.

    Accepts ``None``, ISO dates (``2014-09-12``), ISO datetimes, ``date`` and
    ``datetime`` objects. Naive values are taken as UTC so registry and
    document dates always compare.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    raise ValueError(f"Invalid issued date: {value!r}")


class VocabularyTerm(BaseModel):
    title: str
    lang: str | None = None


class VocabularyConcept(BaseModel):
    """One controlled entry of a vocabulary, with its terms per language."""

    identifier: str
    uri: str | None = None
    description: str | None = None
    link: str | None = None
    preferred_terms: list[VocabularyTerm] = []
    alternative_terms: list[VocabularyTerm] = []

    def preferred_term(self, lang: str) -> VocabularyTerm | None:
        """Preferred term for ``lang`` (case-insensitive), or ``None``."""
        wanted = lang.lower()
        for term in self.preferred_terms:
            if term.lang is not None and term.lang.lower() == wanted:
                return term
        return None


class Vocabulary(BaseModel):
    """A parsed, versioned vocabulary document."""

    identifier: str
    resolvable_location: str | None = None  # None until the registry confirms it
    issued: datetime | None = None
    latest: bool = False  # As of the last reconciliation only
    modified: datetime | None = None  # Filesystem mtime of the cache file
    title: str | None = None
    description: str | None = None
    subject: str | None = None
    link: str | None = None
    concepts: list[VocabularyConcept] = []

    @field_validator("issued", mode="before")
    @classmethod
    def validate_issued(cls, v: object) -> datetime | None:
        return coerce_issued(v)
