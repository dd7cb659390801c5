from __future__ import annotations

from vocabcache.models.registry import RegistryVocabulary
from vocabcache.models.vocabulary import Vocabulary, VocabularyConcept, VocabularyTerm

__all__ = [
    # vocabulary
    "Vocabulary",
    "VocabularyConcept",
    "VocabularyTerm",
    # registry
    "RegistryVocabulary",
]
