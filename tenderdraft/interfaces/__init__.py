"""Collaborator interfaces (abstract base classes) for tenderDraft."""

from tenderdraft.interfaces.corpus_store import ICorpusStore
from tenderdraft.interfaces.llm_provider import ILLMProvider
from tenderdraft.interfaces.object_store import IObjectStore
from tenderdraft.interfaces.text_extractor import ITextExtractor
from tenderdraft.interfaces.vectorizer import IVectorizer

__all__ = [
    "ICorpusStore",
    "ILLMProvider",
    "IObjectStore",
    "ITextExtractor",
    "IVectorizer",
]
