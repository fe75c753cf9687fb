"""Abstract base class for text-to-vector providers.

The same implementation must be used for indexing corpus chunks and for
vectorizing search queries, otherwise stored and query vectors do not share a
space.  The default implementation is the deterministic character vectorizer;
a semantic embedding model can be dropped in behind this interface as long as
its dimension matches the stored vectors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: CharacterVectorizer (tenderdraft/services/ingestion/vectorizer.py)
class IVectorizer(ABC):
    """Contract for producing fixed-length vectors from text."""

    @abstractmethod
    def vectorize(self, text: str) -> list[float]:
        """Return the vector for *text*; length equals :meth:`get_dimension`."""

    def vectorize_many(self, texts: list[str]) -> list[list[float]]:
        """Vectorize several texts, positionally aligned with *texts*."""
        return [self.vectorize(text) for text in texts]

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the constant dimensionality of produced vectors."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"char-frequency"``."""
