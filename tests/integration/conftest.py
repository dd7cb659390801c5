"""Integration test fixtures.

Wires the real parser, fetcher and registry client against respx-mocked HTTP
endpoints, with the data dir under ``tmp_path``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest
import respx

from vocabcache.config import Settings

if TYPE_CHECKING:
    from pathlib import Path

REGISTRY_URL = "https://registry.example.org/thesauri.json"
LANGUAGE = "http://iso.org/639-1"
COUNTRY = "http://iso.org/iso3166-1/alpha2"


def vocab_url(identifier: str, issued: str) -> str:
    return f"https://rs.example.org/{identifier.rsplit('/', 1)[-1]}_{issued}.xml"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        registry={"url": REGISTRY_URL},
        defaults={"vocabularies": [LANGUAGE, COUNTRY]},
        logging={"level": "WARNING", "format": "text"},
    )


@pytest.fixture()
def mocked_http():
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
def publish(mocked_http, thesaurus):
    """Publish vocabulary versions on the mocked registry and file server.

    Returns a function taking ``(identifier, issued, latest=True)``. The
    registry listing is rendered from the published rows on every request.
    """
    rows: list[dict] = []
    mocked_http.get(REGISTRY_URL).mock(
        side_effect=lambda request: httpx.Response(200, json={"thesauri": list(rows)})
    )

    def _publish(identifier: str, issued: str, latest: bool = True) -> str:
        url = vocab_url(identifier, issued)
        mocked_http.get(url).mock(
            return_value=httpx.Response(200, content=thesaurus(identifier, issued=issued))
        )
        for row in rows:
            if row["identifier"] == identifier and latest:
                row["isLatest"] = False
        rows.append({"identifier": identifier, "url": url, "issued": issued, "isLatest": latest})
        return url

    return _publish
