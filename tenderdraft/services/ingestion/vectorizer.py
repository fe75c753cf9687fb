"""Deterministic character-frequency vectorizer.

Maps any text to a unit-length vector of :data:`EMBEDDING_DIMENSION` (1536)
components without calling an embedding model:

1. Start from the zero vector.
2. For each of the first 1536 characters at position ``i``, add
   ``ord(char) / 255`` to component ``i % 1536``.
3. Divide by the Euclidean norm, unless the norm is zero (empty text), in
   which case the zero vector is returned as-is.

Characters are Python code points.  Vectors built from UTF-16 code units
(JavaScript `charCodeAt`, for example) agree with these only for text inside
the Basic Multilingual Plane: an emoji or a supplementary CJK ideograph is
one code point here but a surrogate pair there, which shifts every later
position.  Stored vectors from such a source must be re-ingested rather
than mixed with these.

This is a structural placeholder, not a semantic embedding.  Identical texts
get identical vectors and texts sharing a prefix get similar ones, which is
enough for approximate similarity search but says nothing about meaning.
The same function must vectorize both corpus chunks and queries; swap in a
real embedding model behind :class:`~tenderdraft.interfaces.vectorizer.IVectorizer`
(and re-ingest) for meaningful retrieval.
"""

from __future__ import annotations

import numpy as np

from tenderdraft.interfaces.vectorizer import IVectorizer
from tenderdraft.models.corpus import EMBEDDING_DIMENSION


class CharacterVectorizer(IVectorizer):
    """Character-code vectorizer producing L2-normalized 1536-d vectors."""

    def __init__(self, dimension: int = EMBEDDING_DIMENSION) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self._dimension = dimension

    def vectorize(self, text: str) -> list[float]:
        vector = np.zeros(self._dimension, dtype=np.float64)
        prefix = text[: self._dimension]
        if prefix:
            codes = np.fromiter((ord(ch) for ch in prefix), dtype=np.float64, count=len(prefix))
            indices = np.arange(len(prefix)) % self._dimension
            np.add.at(vector, indices, codes / 255.0)

        norm = float(np.linalg.norm(vector))
        if norm > 0:
            vector /= norm
        return vector.tolist()

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "char-frequency"
