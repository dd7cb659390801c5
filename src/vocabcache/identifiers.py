"""Derive filesystem-safe names from vocabulary identifiers and URLs.

Every run of ``/``, ``.`` and ``:`` becomes a single ``_``. Two URIs that
differ only in those separators map to the same name; on-disk layouts depend
on this exact transform, so the collision risk is accepted rather than fixed.
"""

from __future__ import annotations

import re

CACHE_SUFFIX = ".vocab"
DOWNLOAD_SUFFIX = ".xml"

_SEPARATORS = re.compile(r"[/.:]+")


def normalize(identifier: str) -> str:
    return _SEPARATORS.sub("_", identifier)


def cache_filename(identifier: str, suffix: str = CACHE_SUFFIX) -> str:
    """Filename of the cache file for ``identifier``.

    >>> cache_filename("http://rs.gbif.org/vocabulary/gbif/rank")
    'http_rs_gbif_org_vocabulary_gbif_rank.vocab'
    """
    return normalize(identifier) + suffix


def download_filename(url: str) -> str:
    """Filename for an in-flight download of ``url``."""
    return normalize(url) + DOWNLOAD_SUFFIX
