"""HTTP transport for vocabulary documents.

``download`` streams a document to a destination file; ``download_if_changed``
issues a conditional GET against an existing cache file and replaces it only
when the server reports new content. Any non-2xx response is a
``VocabCacheError(DOWNLOAD_FAILED)``, never treated as success.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import TYPE_CHECKING

import httpx
import structlog

from vocabcache.config import FetcherSettings
from vocabcache.errors import ErrorCode, VocabCacheError

if TYPE_CHECKING:
    from pathlib import Path

log = structlog.get_logger()


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client used by the fetcher and registry client."""
    settings = settings or FetcherSettings()
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
    )


def _failed(url: str, status: int) -> VocabCacheError:
    return VocabCacheError(
        ErrorCode.DOWNLOAD_FAILED,
        f"Failed to download vocabulary: {url}. Response={status}",
        recoverable=status >= 500,
    )


async def _stream_to(response: httpx.Response, dest: Path) -> None:
    try:
        with dest.open("wb") as fh:
            async for chunk in response.aiter_bytes():
                fh.write(chunk)
    except BaseException:
        dest.unlink(missing_ok=True)
        raise


def _set_mtime(path: Path, last_modified: str | None) -> None:
    if not last_modified:
        return
    try:
        stamp = parsedate_to_datetime(last_modified).timestamp()
    except (TypeError, ValueError):
        log.debug("invalid_last_modified", value=last_modified)
        return
    os.utime(path, (stamp, stamp))


class Fetcher:
    """httpx-backed implementation of TransportProtocol."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def download(self, url: str, dest: Path) -> int:
        """Download ``url`` into ``dest`` and return the HTTP status."""
        try:
            async with self._client.stream("GET", url) as response:
                if not response.is_success:
                    log.error("vocab_download_failed", url=url, status_code=response.status_code)
                    raise _failed(url, response.status_code)
                await _stream_to(response, dest)
                _set_mtime(dest, response.headers.get("last-modified"))
        except httpx.HTTPError as exc:
            log.error("vocab_download_failed", url=url, exc_info=True)
            raise VocabCacheError(
                ErrorCode.DOWNLOAD_FAILED,
                f"Failed to download vocabulary: {url}",
                recoverable=True,
            ) from exc

        log.info("vocab_downloaded", url=url, path=str(dest))
        return response.status_code

    async def download_if_changed(self, url: str, path: Path) -> bool:
        """Refresh ``path`` from ``url`` if the server has newer content.

        Sends ``If-Modified-Since`` from the file's mtime. Returns ``False`` on
        304, ``True`` after replacing the file on 2xx.
        """
        headers = {}
        if path.exists():
            mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
            headers["If-Modified-Since"] = format_datetime(mtime, usegmt=True)

        partial = path.with_name(path.name + ".part")
        try:
            async with self._client.stream("GET", url, headers=headers) as response:
                if response.status_code == httpx.codes.NOT_MODIFIED:
                    log.debug("vocab_not_modified", url=url)
                    return False
                if not response.is_success:
                    log.error("vocab_download_failed", url=url, status_code=response.status_code)
                    raise _failed(url, response.status_code)
                path.parent.mkdir(parents=True, exist_ok=True)
                await _stream_to(response, partial)
                _set_mtime(partial, response.headers.get("last-modified"))
        except httpx.HTTPError as exc:
            log.error("vocab_download_failed", url=url, exc_info=True)
            raise VocabCacheError(
                ErrorCode.DOWNLOAD_FAILED,
                f"Failed to download vocabulary: {url}",
                recoverable=True,
            ) from exc

        os.replace(partial, path)
        log.info("vocab_changed", url=url, path=str(path))
        return True
