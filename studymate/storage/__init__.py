"""Storage package for studymate.

Whole-document persistence for the flashcard store and the performance
ledger. FlashcardStore and DocumentFile are the public API.
"""

from .documents import JSON_CODEC, YAML_CODEC, DocumentFile
from .flashcard_store import FlashcardStore

__all__ = ["DocumentFile", "FlashcardStore", "JSON_CODEC", "YAML_CODEC"]
