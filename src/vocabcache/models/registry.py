from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vocabcache.models.vocabulary import coerce_issued


class RegistryVocabulary(BaseModel):
    """Single vocabulary row advertised by the registry."""

    model_config = ConfigDict(populate_by_name=True)

    identifier: str | None = None
    url: str | None = None  # Resolvable location of this version
    issued: datetime | None = None
    latest: bool = Field(default=False, alias="isLatest")
    title: str | None = None

    @field_validator("identifier", "url", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("issued", mode="before")
    @classmethod
    def validate_issued(cls, v: object) -> datetime | None:
        return coerce_issued(v)
