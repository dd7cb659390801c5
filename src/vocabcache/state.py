"""Application state: the wired-up vocabulary cache stack."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from vocabcache.fetcher import Fetcher, build_http_client
from vocabcache.loader import DocumentLoader
from vocabcache.logging_config import setup_logging
from vocabcache.manager import VocabulariesManager
from vocabcache.parser import ThesaurusParser
from vocabcache.registry import RegistryClient
from vocabcache.startup import StartupWarnings
from vocabcache.store import LocalStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

    from vocabcache.config import Settings

log = structlog.get_logger()


@dataclass
class AppState:
    """Everything a presentation layer needs to serve vocabularies."""

    settings: Settings
    manager: VocabulariesManager
    http_client: httpx.AsyncClient | None = None
    fetcher: Fetcher | None = None
    registry: RegistryClient | None = None
    warnings: StartupWarnings = field(default_factory=StartupWarnings)


def build_manager(
    settings: Settings,
    client: httpx.AsyncClient,
    warnings: StartupWarnings,
) -> tuple[VocabulariesManager, Fetcher, RegistryClient]:
    store = LocalStore(settings.cache_dir, settings.tmp_dir, settings.cache.suffix)
    fetcher = Fetcher(client)
    registry = RegistryClient(
        client, settings.registry.url, timeout=settings.registry.request_timeout_seconds
    )
    manager = VocabulariesManager(
        store=store,
        loader=DocumentLoader(ThesaurusParser()),
        transport=fetcher,
        registry=registry,
        warnings=warnings,
        defaults=settings.defaults.vocabularies,
    )
    return manager, fetcher, registry


@asynccontextmanager
async def open_app_state(
    settings: Settings, client: httpx.AsyncClient | None = None
) -> AsyncIterator[AppState]:
    """Build the stack, load the cache and bootstrap the mandatory vocabularies.

    A failed bootstrap propagates; the process is not expected to start
    without its mandatory vocabularies. A client passed in is left open.
    """
    setup_logging(settings.logging)
    own_client = client is None
    http_client = client or build_http_client(settings.fetcher)
    try:
        warnings = StartupWarnings()
        manager, fetcher, registry = build_manager(settings, http_client, warnings)

        loaded = await manager.load()
        await manager.install_or_update_defaults()
        log.info(
            "vocabcache_ready",
            loaded=loaded,
            installed=len(manager.list()),
            warnings=len(warnings),
        )

        yield AppState(
            settings=settings,
            manager=manager,
            http_client=http_client,
            fetcher=fetcher,
            registry=registry,
            warnings=warnings,
        )
    finally:
        if own_client:
            await http_client.aclose()
