"""Local, registry-synchronised cache of controlled vocabularies."""

from __future__ import annotations

from vocabcache.errors import ErrorCode, VocabCacheError
from vocabcache.manager import VocabulariesManager
from vocabcache.state import AppState, open_app_state

__all__ = [
    "AppState",
    "ErrorCode",
    "VocabCacheError",
    "VocabulariesManager",
    "open_app_state",
]
