"""Unit tests for vocabcache.fetcher."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import httpx
import pytest
import respx

from vocabcache.config import FetcherSettings
from vocabcache.errors import ErrorCode, VocabCacheError
from vocabcache.fetcher import Fetcher, build_http_client

if TYPE_CHECKING:
    from pathlib import Path

URL = "https://rs.gbif.org/vocabulary/gbif/rank.xml"
LAST_MODIFIED = "Wed, 21 Oct 2020 07:28:00 GMT"


class TestBuildHttpClient:
    def test_client_configuration(self) -> None:
        client = build_http_client(FetcherSettings(timeout_seconds=5, user_agent="test-agent"))
        assert isinstance(client, httpx.AsyncClient)
        assert client.follow_redirects is True
        assert client.timeout.read == 5
        assert client.headers["User-Agent"] == "test-agent"


class TestDownload:
    async def test_successful_download(self, tmp_path: Path) -> None:
        dest = tmp_path / "rank.xml"
        with respx.mock:
            respx.get(URL).mock(
                return_value=httpx.Response(
                    200, content=b"<thesaurus/>", headers={"Last-Modified": LAST_MODIFIED}
                )
            )
            async with httpx.AsyncClient() as client:
                status = await Fetcher(client).download(URL, dest)
        assert status == 200
        assert dest.read_bytes() == b"<thesaurus/>"
        assert dest.stat().st_mtime == datetime(2020, 10, 21, 7, 28, tzinfo=UTC).timestamp()

    async def test_404_raises_error(self, tmp_path: Path) -> None:
        dest = tmp_path / "rank.xml"
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(404))
            async with httpx.AsyncClient() as client:
                with pytest.raises(VocabCacheError) as exc_info:
                    await Fetcher(client).download(URL, dest)
        assert exc_info.value.code == ErrorCode.DOWNLOAD_FAILED
        assert exc_info.value.recoverable is False
        assert "404" in exc_info.value.message
        assert not dest.exists()

    async def test_500_is_recoverable(self, tmp_path: Path) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(503))
            async with httpx.AsyncClient() as client:
                with pytest.raises(VocabCacheError) as exc_info:
                    await Fetcher(client).download(URL, tmp_path / "rank.xml")
        assert exc_info.value.recoverable is True

    async def test_network_error_raises_error(self, tmp_path: Path) -> None:
        with respx.mock:
            respx.get(URL).mock(side_effect=httpx.ConnectError("Connection refused"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(VocabCacheError) as exc_info:
                    await Fetcher(client).download(URL, tmp_path / "rank.xml")
        assert exc_info.value.code == ErrorCode.DOWNLOAD_FAILED
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestDownloadIfChanged:
    async def test_not_modified_keeps_file(self, tmp_path: Path) -> None:
        path = tmp_path / "rank.vocab"
        path.write_bytes(b"old")
        stamp = datetime(2020, 10, 21, 7, 28, tzinfo=UTC).timestamp()
        os.utime(path, (stamp, stamp))

        with respx.mock:
            route = respx.get(URL).mock(return_value=httpx.Response(304))
            async with httpx.AsyncClient() as client:
                changed = await Fetcher(client).download_if_changed(URL, path)

        assert changed is False
        assert path.read_bytes() == b"old"
        assert route.calls.last.request.headers["If-Modified-Since"] == LAST_MODIFIED

    async def test_changed_replaces_file(self, tmp_path: Path) -> None:
        path = tmp_path / "rank.vocab"
        path.write_bytes(b"old")

        with respx.mock:
            respx.get(URL).mock(
                return_value=httpx.Response(
                    200, content=b"new", headers={"Last-Modified": LAST_MODIFIED}
                )
            )
            async with httpx.AsyncClient() as client:
                changed = await Fetcher(client).download_if_changed(URL, path)

        assert changed is True
        assert path.read_bytes() == b"new"
        assert not (tmp_path / "rank.vocab.part").exists()

    async def test_missing_file_sends_unconditional_request(self, tmp_path: Path) -> None:
        path = tmp_path / "rank.vocab"
        with respx.mock:
            route = respx.get(URL).mock(return_value=httpx.Response(200, content=b"new"))
            async with httpx.AsyncClient() as client:
                assert await Fetcher(client).download_if_changed(URL, path) is True
        assert "If-Modified-Since" not in route.calls.last.request.headers

    async def test_error_status_propagates(self, tmp_path: Path) -> None:
        path = tmp_path / "rank.vocab"
        path.write_bytes(b"old")
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(500))
            async with httpx.AsyncClient() as client:
                with pytest.raises(VocabCacheError) as exc_info:
                    await Fetcher(client).download_if_changed(URL, path)
        assert exc_info.value.code == ErrorCode.DOWNLOAD_FAILED
        assert path.read_bytes() == b"old"
